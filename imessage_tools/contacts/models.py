"""Data models for macOS Contacts records"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass
class ContactPhone:
    """Phone number for a contact"""
    number: str
    normalized: str
    label: Optional[str] = None


@dataclass
class ContactEmail:
    """Email address for a contact"""
    address: str
    label: Optional[str] = None


@dataclass
class Contact:
    """A person or company from the AddressBook database"""
    id: int
    uuid: Optional[str]
    full_name: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    middle_name: Optional[str] = None
    nickname: Optional[str] = None
    organization: Optional[str] = None
    department: Optional[str] = None
    job_title: Optional[str] = None
    phone_numbers: List[ContactPhone] = field(default_factory=list)
    emails: List[ContactEmail] = field(default_factory=list)
    created_date: Optional[datetime] = None
    modified_date: Optional[datetime] = None
    note: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for key in ("created_date", "modified_date"):
            if data[key] is not None:
                data[key] = data[key].isoformat()
        return data

    def __str__(self) -> str:
        details = []
        if self.phone_numbers:
            details.append(f"phone: {self.phone_numbers[0].number}")
        if self.emails:
            details.append(f"email: {self.emails[0].address}")
        detail_str = " (" + ", ".join(details) + ")" if details else ""
        return f"{self.full_name}{detail_str}"


@dataclass
class ContactSearchOptions:
    """Search options for contacts. All given criteria must match."""
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    organization: Optional[str] = None
    limit: Optional[int] = None
    offset: Optional[int] = None
    case_sensitive: bool = False


@dataclass
class ContactMatch:
    """A name/phone pair returned by the Contacts app through AppleScript"""
    name: str
    phone: str

    def __str__(self) -> str:
        return f"{self.name} - {self.phone}"
