"""Utility functions for the iMessage SDK"""

import re
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Union

# Apple epoch starts at 2001-01-01 00:00:00 UTC
APPLE_EPOCH = datetime(2001, 1, 1, tzinfo=timezone.utc)
APPLE_EPOCH_UNIX = 978307200
NANOSECONDS_PER_SECOND = 1_000_000_000


def apple_time_to_datetime(apple_time: Union[int, float]) -> datetime:
    """
    Convert an Apple Core Data timestamp to an aware UTC datetime.

    chat.db stores dates as nanoseconds since 2001-01-01 UTC.
    """
    return APPLE_EPOCH + timedelta(seconds=apple_time / NANOSECONDS_PER_SECOND)


def datetime_to_apple_time(value: datetime) -> int:
    """Convert a datetime to an Apple timestamp. Naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    seconds = int(value.timestamp()) - APPLE_EPOCH_UNIX
    return seconds * NANOSECONDS_PER_SECOND


def format_handle(handle_id: str) -> str:
    """Format a phone number handle for display. Emails are returned unchanged."""
    if "@" in handle_id:
        return handle_id

    cleaned = re.sub(r"\D", "", handle_id)
    if len(cleaned) == 11 and cleaned.startswith("1"):
        return f"+1 ({cleaned[1:4]}) {cleaned[4:7]}-{cleaned[7:]}"
    if len(cleaned) == 10:
        return f"({cleaned[:3]}) {cleaned[3:6]}-{cleaned[6:]}"

    return handle_id


def is_group_chat(chat_identifier: str) -> bool:
    """Group chats use identifiers of the form chat123456..."""
    return chat_identifier.startswith("chat")


def get_default_database_path() -> str:
    """Get the default iMessage database path"""
    return str(Path.home() / "Library" / "Messages" / "chat.db")


def validate_database_path(path: Union[str, Path]) -> bool:
    """Check that the database path exists"""
    try:
        return Path(path).expanduser().exists()
    except OSError:
        return False
