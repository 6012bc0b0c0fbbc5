"""Utility functions for the Contacts SDK"""

import re
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional, Union

# Core Foundation absolute reference date: 2001-01-01 00:00:00 UTC
CF_ABSOLUTE_TIME_EPOCH = datetime(2001, 1, 1, tzinfo=timezone.utc)

ADDRESSBOOK_DIR = Path.home() / "Library" / "Application Support" / "AddressBook"
DATABASE_NAMES = [
    "AddressBook-v22.abcddb",
    "AddressBook-v23.abcddb",
    "AddressBook.sqlitedb",
]

LABEL_MAP = {
    "_$!<mobile>!$_": "mobile",
    "_$!<home>!$_": "home",
    "_$!<work>!$_": "work",
    "_$!<main>!$_": "main",
    "_$!<homefax>!$_": "home fax",
    "_$!<workfax>!$_": "work fax",
    "_$!<otherfax>!$_": "other fax",
    "_$!<pager>!$_": "pager",
    "_$!<iphone>!$_": "iPhone",
    "_$!<other>!$_": "other",
}


def cf_time_to_datetime(cf_time: Union[int, float]) -> datetime:
    """Convert CF absolute time (seconds since 2001-01-01 UTC) to an aware datetime."""
    return CF_ABSOLUTE_TIME_EPOCH + timedelta(seconds=cf_time)


def datetime_to_cf_time(value: datetime) -> float:
    """Convert a datetime to CF absolute time. Naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - CF_ABSOLUTE_TIME_EPOCH).total_seconds()


def get_default_database_path(addressbook_dir: Optional[Path] = None) -> str:
    """
    Find the Contacts database.

    The file name varies by macOS version, and iCloud/Exchange accounts keep
    their own copies under Sources/<UUID>/. The first existing candidate wins.
    """
    root = addressbook_dir or ADDRESSBOOK_DIR

    for name in DATABASE_NAMES:
        path = root / name
        if path.exists():
            return str(path)

    sources_dir = root / "Sources"
    if sources_dir.exists():
        for source_db in sorted(sources_dir.glob("*/AddressBook-v22.abcddb")):
            return str(source_db)

    return str(root / DATABASE_NAMES[0])


def validate_database_path(path: Union[str, Path]) -> bool:
    """Check that the database path exists"""
    return Path(path).expanduser().exists()


def normalize_phone_number(phone: str) -> str:
    """
    Normalize a phone number to digits with a leading country code.

    Keeps a leading +, adds +1 to 10-digit US numbers and + to numbers of
    11 or more digits. Shorter numbers are returned as bare digits.
    """
    normalized = re.sub(r"[^\d+]", "", phone or "")

    if normalized.startswith("+"):
        return normalized

    if len(normalized) == 10:
        return f"+1{normalized}"

    if len(normalized) >= 11:
        return f"+{normalized}"

    return normalized


def phone_numbers_match(phone1: str, phone2: str) -> bool:
    """Compare two phone numbers after normalization, ignoring a one-digit country code"""
    norm1 = normalize_phone_number(phone1)
    norm2 = normalize_phone_number(phone2)

    if norm1 == norm2:
        return True

    digits1 = re.sub(r"^\+\d", "", norm1)
    digits2 = re.sub(r"^\+\d", "", norm2)
    return digits1 == digits2


def format_full_name(
    first_name: Optional[str],
    middle_name: Optional[str],
    last_name: Optional[str],
    organization: Optional[str],
) -> str:
    """Join name parts, falling back to the organization, then "Unknown Contact"."""
    parts = [part.strip() for part in (first_name, middle_name, last_name) if part and part.strip()]
    if parts:
        return " ".join(parts)

    if organization and organization.strip():
        return organization.strip()

    return "Unknown Contact"


def normalize_label(label: Optional[str]) -> Optional[str]:
    """Map Contacts' internal labels such as ``_$!<Mobile>!$_`` to display names"""
    if not label:
        return None
    return LABEL_MAP.get(label.lower(), label)
