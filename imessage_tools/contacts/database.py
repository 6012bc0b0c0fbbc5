"""Read-only access to the macOS Contacts AddressBook database"""

import re
import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from imessage_tools.contacts.models import Contact, ContactEmail, ContactPhone, ContactSearchOptions
from imessage_tools.contacts.utils import (
    cf_time_to_datetime,
    format_full_name,
    get_default_database_path,
    normalize_label,
    normalize_phone_number,
    phone_numbers_match,
    validate_database_path,
)
from imessage_tools.exceptions import DatabaseAccessError, DatabaseNotFoundError
from imessage_tools.imessage.client import open_sqlite_database
from imessage_tools.logger_config import get_logger

logger = get_logger(__name__)

RECORD_SELECT = """
    SELECT
        r.Z_PK, r.ZUNIQUEID, r.ZFIRSTNAME, r.ZLASTNAME, r.ZMIDDLENAME,
        r.ZNICKNAME, r.ZORGANIZATION, r.ZDEPARTMENT, r.ZJOBTITLE, r.ZNOTE,
        r.ZCREATIONDATE, r.ZMODIFICATIONDATE
    FROM ZABCDRECORD r
"""

# Group and container rows carry no name or organization
CONTACT_ONLY = (
    "(r.ZFIRSTNAME IS NOT NULL OR r.ZLASTNAME IS NOT NULL OR r.ZORGANIZATION IS NOT NULL)"
)

NAME_COLUMNS = ("r.ZFIRSTNAME", "r.ZLASTNAME", "r.ZMIDDLENAME", "r.ZNICKNAME")
FULL_NAME_EXPR = "(COALESCE(r.ZFIRSTNAME, '') || ' ' || COALESCE(r.ZLASTNAME, ''))"


def _text_match(column: str, value: str, case_sensitive: bool) -> Tuple[str, List[Any]]:
    """SQL fragment matching ``value`` anywhere inside ``column``"""
    if case_sensitive:
        return f"instr({column}, ?) > 0", [value]
    return f"{column} LIKE ? ESCAPE '\\'", [f"%{_escape_like(value)}%"]


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _digits(value: str) -> str:
    return re.sub(r"\D", "", value or "")


class ContactsDatabase:
    """Queries contacts from the AddressBook SQLite database"""

    def __init__(self, database_path: Optional[str] = None):
        """
        Open the AddressBook database read-only.

        Args:
            database_path: Path to the .abcddb file (default: auto-detected)

        Raises:
            DatabaseNotFoundError: If the database file does not exist
            DatabaseAccessError: If the database cannot be opened
        """
        self.database_path = Path(database_path or get_default_database_path()).expanduser()

        if not validate_database_path(self.database_path):
            raise DatabaseNotFoundError(
                f"Contacts database not found at: {self.database_path}\n"
                "Make sure you have granted Full Disk Access to your terminal/app in "
                "System Settings > Privacy & Security > Full Disk Access"
            )

        self.conn = open_sqlite_database(self.database_path, readonly=True)
        logger.info(f"Opened Contacts database at {self.database_path}")

    def __enter__(self) -> 'ContactsDatabase':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self):
        """Close the database connection"""
        self.conn.close()

    def _fetchall(self, query: str, params: Sequence[Any] = ()) -> List[sqlite3.Row]:
        try:
            return self.conn.execute(query, tuple(params)).fetchall()
        except sqlite3.Error as e:
            raise DatabaseAccessError(f"Contacts query failed: {e}") from e

    def _load_phones(self, record_id: int) -> List[ContactPhone]:
        rows = self._fetchall(
            "SELECT ZFULLNUMBER, ZLABEL FROM ZABCDPHONENUMBER WHERE ZOWNER = ? ORDER BY Z_PK",
            (record_id,),
        )
        return [
            ContactPhone(
                number=row["ZFULLNUMBER"],
                normalized=normalize_phone_number(row["ZFULLNUMBER"]),
                label=normalize_label(row["ZLABEL"]),
            )
            for row in rows
            if row["ZFULLNUMBER"]
        ]

    def _load_emails(self, record_id: int) -> List[ContactEmail]:
        rows = self._fetchall(
            "SELECT ZADDRESS, ZLABEL FROM ZABCDEMAILADDRESS WHERE ZOWNER = ? ORDER BY Z_PK",
            (record_id,),
        )
        return [
            ContactEmail(address=row["ZADDRESS"], label=normalize_label(row["ZLABEL"]))
            for row in rows
            if row["ZADDRESS"]
        ]

    def _build_contact(self, row: sqlite3.Row) -> Contact:
        created = row["ZCREATIONDATE"]
        modified = row["ZMODIFICATIONDATE"]
        return Contact(
            id=row["Z_PK"],
            uuid=row["ZUNIQUEID"],
            full_name=format_full_name(
                row["ZFIRSTNAME"], row["ZMIDDLENAME"], row["ZLASTNAME"], row["ZORGANIZATION"]
            ),
            first_name=row["ZFIRSTNAME"],
            last_name=row["ZLASTNAME"],
            middle_name=row["ZMIDDLENAME"],
            nickname=row["ZNICKNAME"],
            organization=row["ZORGANIZATION"],
            department=row["ZDEPARTMENT"],
            job_title=row["ZJOBTITLE"],
            phone_numbers=self._load_phones(row["Z_PK"]),
            emails=self._load_emails(row["Z_PK"]),
            created_date=cf_time_to_datetime(created) if created is not None else None,
            modified_date=cf_time_to_datetime(modified) if modified is not None else None,
            note=row["ZNOTE"],
        )

    def get_all_contacts(self, limit: Optional[int] = None) -> List[Contact]:
        """
        Get all contacts ordered by last name, then first name.

        Args:
            limit: Maximum number of contacts to return

        Returns:
            List of contacts with phone numbers and emails
        """
        query = RECORD_SELECT + f" WHERE {CONTACT_ONLY} ORDER BY r.ZLASTNAME, r.ZFIRSTNAME, r.Z_PK"
        params: List[Any] = []
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        return [self._build_contact(row) for row in self._fetchall(query, params)]

    def get_contact_by_id(self, contact_id: int) -> Optional[Contact]:
        rows = self._fetchall(RECORD_SELECT + " WHERE r.Z_PK = ?", (contact_id,))
        return self._build_contact(rows[0]) if rows else None

    def search_contacts(self, options: ContactSearchOptions) -> List[Contact]:
        """
        Search contacts. Every criterion given in ``options`` must match.

        Name, email and organization are matched in SQL; phone numbers are
        compared on their digits after loading, so formatting differences
        such as "(555) 123-4567" and "+15551234567" do not matter.

        Args:
            options: Search criteria, paging and case sensitivity

        Returns:
            Matching contacts
        """
        conditions = [CONTACT_ONLY]
        params: List[Any] = []
        cs = options.case_sensitive

        if options.name:
            name_parts = []
            for column in NAME_COLUMNS + (FULL_NAME_EXPR,):
                clause, clause_params = _text_match(column, options.name, cs)
                name_parts.append(clause)
                params.extend(clause_params)
            conditions.append("(" + " OR ".join(name_parts) + ")")

        if options.email:
            clause, clause_params = _text_match("e.ZADDRESS", options.email, cs)
            conditions.append(
                f"r.Z_PK IN (SELECT e.ZOWNER FROM ZABCDEMAILADDRESS e WHERE {clause})"
            )
            params.extend(clause_params)

        if options.organization:
            clause, clause_params = _text_match("r.ZORGANIZATION", options.organization, cs)
            conditions.append(clause)
            params.extend(clause_params)

        query = RECORD_SELECT + " WHERE " + " AND ".join(conditions)
        query += " ORDER BY r.ZLASTNAME, r.ZFIRSTNAME, r.Z_PK"

        # Paging happens in SQL only when no phone filtering follows
        if not options.phone and (options.limit is not None or options.offset):
            query += " LIMIT ? OFFSET ?"
            params.extend([options.limit if options.limit is not None else -1, options.offset or 0])

        contacts = [self._build_contact(row) for row in self._fetchall(query, params)]

        if options.phone:
            contacts = [c for c in contacts if self._matches_phone(c, options.phone)]
            start = options.offset or 0
            end = start + options.limit if options.limit is not None else None
            contacts = contacts[start:end]

        logger.debug(f"Contact search matched {len(contacts)} contacts")
        return contacts

    @staticmethod
    def _matches_phone(contact: Contact, phone: str) -> bool:
        query_digits = _digits(phone)
        if not query_digits:
            return False
        for entry in contact.phone_numbers:
            if query_digits in _digits(entry.number) or phone_numbers_match(entry.number, phone):
                return True
        return False

    def search_by_name(self, name: str, limit: Optional[int] = None) -> List[Contact]:
        return self.search_contacts(ContactSearchOptions(name=name, limit=limit))

    def search_by_phone(self, phone: str, limit: Optional[int] = None) -> List[Contact]:
        return self.search_contacts(ContactSearchOptions(phone=phone, limit=limit))

    def search_by_email(self, email: str, limit: Optional[int] = None) -> List[Contact]:
        return self.search_contacts(ContactSearchOptions(email=email, limit=limit))

    def search_by_organization(self, organization: str, limit: Optional[int] = None) -> List[Contact]:
        return self.search_contacts(ContactSearchOptions(organization=organization, limit=limit))

    def get_contact_count(self) -> int:
        rows = self._fetchall(f"SELECT COUNT(*) AS count FROM ZABCDRECORD r WHERE {CONTACT_ONLY}")
        return rows[0]["count"]

    def get_stats(self) -> Dict[str, int]:
        """Counts of contacts and of contacts with phone numbers or emails"""
        with_phones = self._fetchall(
            "SELECT COUNT(DISTINCT r.Z_PK) AS count FROM ZABCDRECORD r "
            f"JOIN ZABCDPHONENUMBER p ON r.Z_PK = p.ZOWNER WHERE {CONTACT_ONLY}"
        )[0]["count"]
        with_emails = self._fetchall(
            "SELECT COUNT(DISTINCT r.Z_PK) AS count FROM ZABCDRECORD r "
            f"JOIN ZABCDEMAILADDRESS e ON r.Z_PK = e.ZOWNER WHERE {CONTACT_ONLY}"
        )[0]["count"]
        return {
            'total_contacts': self.get_contact_count(),
            'contacts_with_phones': with_phones,
            'contacts_with_emails': with_emails,
        }
