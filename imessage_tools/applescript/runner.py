"""
AppleScript execution helpers.

Runs scripts through ``osascript`` and parses the delimited text protocol
the Contacts scripts use to return lists (``item;item`` with ``field|field``).
"""

import asyncio
import subprocess
from typing import Callable, List, Optional, Sequence, TypeVar

from imessage_tools.exceptions import (
    AppleScriptError,
    AppleScriptPermissionError,
    AppleScriptTimeoutError,
)
from imessage_tools.logger_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT_SECONDS = 30
EMPTY_LIST_RESULT = "[]"

PERMISSION_ERROR_MARKERS = (
    "Not authorized to send Apple events",
    "AppleEvent handler failed",
    "-1743",
)


def escape_applescript_string(text: str) -> str:
    """Escape backslashes and quotes for use inside an AppleScript string literal."""
    return text.replace('\\', '\\\\').replace('"', '\\"')


def run_applescript(script: str, timeout: int = DEFAULT_TIMEOUT_SECONDS) -> str:
    """
    Run an AppleScript and return its trimmed stdout.

    Args:
        script: AppleScript source
        timeout: Seconds before the osascript process is killed

    Returns:
        str: Script result as text

    Raises:
        AppleScriptPermissionError: If automation access was denied
        AppleScriptTimeoutError: If the script did not finish in time
        AppleScriptError: For any other osascript failure
    """
    try:
        result = subprocess.run(
            ['osascript', '-e', script],
            capture_output=True,
            text=True,
            timeout=timeout
        )
    except subprocess.TimeoutExpired as e:
        raise AppleScriptTimeoutError(
            f"AppleScript execution timed out after {timeout} seconds"
        ) from e
    except OSError as e:
        raise AppleScriptError(f"Failed to run osascript: {e}") from e

    if result.returncode != 0:
        error_msg = result.stderr.strip()
        if any(marker in error_msg for marker in PERMISSION_ERROR_MARKERS):
            raise AppleScriptPermissionError(
                "AppleScript automation not permitted. Grant your terminal access in "
                "System Settings > Privacy & Security > Automation"
            )
        raise AppleScriptError(f"AppleScript failed: {error_msg}")

    return result.stdout.strip()


async def execute_osascript(script: str, timeout: int = DEFAULT_TIMEOUT_SECONDS) -> str:
    """
    Run an AppleScript without blocking the event loop.

    Returns:
        str: Script result as text
    """
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, run_applescript, script, timeout)


def parse_delimited_result(
    result: str,
    parser: Callable[[Sequence[str]], Optional[T]],
    item_delimiter: str = ";",
    field_delimiter: str = "|",
) -> List[T]:
    """
    Parse ``a|b;c|d`` style AppleScript output.

    Args:
        result: Raw script output; "[]" or "" means no items
        parser: Maps the fields of one item to a value, or None to drop it
        item_delimiter: Separator between items
        field_delimiter: Separator between fields of an item

    Returns:
        Parsed items in order, without dropped ones
    """
    if not result or result == EMPTY_LIST_RESULT:
        return []

    parsed = []
    for item in result.split(item_delimiter):
        if not item:
            continue
        value = parser(item.split(field_delimiter))
        if value is not None:
            parsed.append(value)
    return parsed
