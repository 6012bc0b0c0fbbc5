"""Contacts lookups through the Contacts app via AppleScript"""

from typing import List, Optional, Sequence

from imessage_tools.applescript.runner import (
    DEFAULT_TIMEOUT_SECONDS,
    escape_applescript_string,
    execute_osascript,
    parse_delimited_result,
)
from imessage_tools.contacts.models import ContactMatch
from imessage_tools.logger_config import get_logger

logger = get_logger(__name__)

SEARCH_BY_NAME_SCRIPT = """tell application "Contacts"
    set matchingContacts to every person whose name contains "{name}"

    if (count of matchingContacts) = 0 then
        return "[]"
    end if

    set resultList to {{}}
    repeat with aPerson in matchingContacts
        set personName to name of aPerson

        try
            set phoneList to phones of aPerson
            repeat with aPhone in phoneList
                set phoneValue to value of aPhone
                set end of resultList to personName & "|" & phoneValue
            end repeat
        end try
    end repeat

    set AppleScript's text item delimiters to ";"
    return resultList as text
end tell"""

SEARCH_BY_PHONE_SCRIPT = """tell application "Contacts"
    set matchingPeople to (people whose value of phones contains "{phone}")

    if (count of matchingPeople) = 0 then
        return "[]"
    end if

    set resultList to {{}}
    repeat with aPerson in matchingPeople
        set personName to name of aPerson

        try
            set phoneList to phones of aPerson
            repeat with aPhone in phoneList
                set phoneValue to value of aPhone
                if phoneValue contains "{phone}" then
                    set end of resultList to personName & "|" & phoneValue
                end if
            end repeat
        end try
    end repeat

    set AppleScript's text item delimiters to ";"
    return resultList as text
end tell"""


def parse_contact_match(fields: Sequence[str]) -> Optional[ContactMatch]:
    """Build a ContactMatch from ``name|phone`` fields, or None if either is missing"""
    if len(fields) < 2:
        return None
    name, phone = fields[0], fields[1]
    if name and phone:
        return ContactMatch(name=name, phone=phone)
    return None


class ContactsClient:
    """Searches the Contacts app. Requires automation permission for Contacts."""

    def __init__(self, timeout: int = DEFAULT_TIMEOUT_SECONDS):
        self.timeout = timeout

    async def search_by_name(self, name: str) -> List[ContactMatch]:
        """
        Search contacts whose name contains ``name``.

        Returns:
            One ContactMatch per phone number of each matching person
        """
        script = SEARCH_BY_NAME_SCRIPT.format(name=escape_applescript_string(name))
        result = await execute_osascript(script, self.timeout)
        matches = parse_delimited_result(result, parse_contact_match)
        logger.info(f"Contacts name search returned {len(matches)} matches")
        return matches

    async def search_by_phone(self, phone: str) -> List[ContactMatch]:
        """
        Search contacts with a phone number containing ``phone``.

        Returns:
            Matching phone numbers with their owner's name
        """
        script = SEARCH_BY_PHONE_SCRIPT.format(phone=escape_applescript_string(phone))
        result = await execute_osascript(script, self.timeout)
        matches = parse_delimited_result(result, parse_contact_match)
        logger.info(f"Contacts phone search returned {len(matches)} matches")
        return matches
