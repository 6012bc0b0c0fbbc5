"""Helpers shared by the MCP tool modules"""

from datetime import datetime
from typing import Callable, Optional, TypeVar

T = TypeVar("T")


def format_tool_error(prefix: str, error: BaseException) -> str:
    """
    Format an exception as a tool response.

    Args:
        prefix: What failed, e.g. "Error searching messages"
        error: The exception raised by the tool

    Returns:
        str: "<prefix>: <message>"
    """
    message = str(error) or "Unknown error"
    return f"{prefix}: {message}"


def parse_iso_date(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO 8601 date or datetime string.

    Dates without a time are midnight; values without an offset are taken
    as UTC downstream.

    Raises:
        ValueError: If the string is not ISO 8601
    """
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError as e:
        raise ValueError(f"Invalid date: {value}") from e


def lazy_provider(factory: Callable[[], T]) -> Callable[[], T]:
    """Return a callable that builds ``factory()`` on first use and caches it"""
    instance: Optional[T] = None

    def provider() -> T:
        nonlocal instance
        if instance is None:
            instance = factory()
        return instance

    return provider
