"""AppleScript execution utilities"""

from .runner import (
    escape_applescript_string,
    execute_osascript,
    parse_delimited_result,
    run_applescript,
)

__all__ = [
    'escape_applescript_string',
    'execute_osascript',
    'parse_delimited_result',
    'run_applescript',
]
