"""
Contacts SDK for imessage_tools.

Read-only access to the macOS AddressBook database, plus lookups through
the Contacts app via AppleScript.
"""

from .client import ContactsClient
from .database import ContactsDatabase
from .models import Contact, ContactEmail, ContactMatch, ContactPhone, ContactSearchOptions
from .utils import (
    cf_time_to_datetime,
    datetime_to_cf_time,
    format_full_name,
    normalize_label,
    normalize_phone_number,
    phone_numbers_match,
)

__all__ = [
    # Clients
    'ContactsClient',
    'ContactsDatabase',

    # Models
    'Contact',
    'ContactEmail',
    'ContactMatch',
    'ContactPhone',
    'ContactSearchOptions',

    # Utilities
    'cf_time_to_datetime',
    'datetime_to_cf_time',
    'format_full_name',
    'normalize_label',
    'normalize_phone_number',
    'phone_numbers_match',
]
