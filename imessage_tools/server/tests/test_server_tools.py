"""Tests for the MCP tool implementations"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from imessage_tools.contacts.models import ContactMatch
from imessage_tools.exceptions import AppleScriptPermissionError, DatabaseNotFoundError
from imessage_tools.server.tools import ContactsTools, DatabaseTools, IMessageTools
from imessage_tools.server.tools.database import render_table
from imessage_tools.server.utils import format_tool_error, lazy_provider, parse_iso_date


@pytest.fixture
def imessage_tools(imessage_client):
    return IMessageTools(lambda: imessage_client)


@pytest.fixture
def database_tools(imessage_client):
    return DatabaseTools(lambda: imessage_client)


def missing_database():
    raise DatabaseNotFoundError("iMessage database not found at: /nowhere/chat.db")


class TestServerUtils:

    def test_format_tool_error(self):
        assert format_tool_error("Error searching messages", ValueError("bad")) == (
            "Error searching messages: bad"
        )

    def test_format_tool_error_without_message(self):
        assert format_tool_error("Error", RuntimeError()) == "Error: Unknown error"

    def test_parse_iso_date(self):
        assert parse_iso_date(None) is None
        assert parse_iso_date("2024-01-15").isoformat() == "2024-01-15T00:00:00"
        assert parse_iso_date("2024-01-15T10:30:00Z").isoformat() == "2024-01-15T10:30:00+00:00"

    def test_parse_iso_date_invalid(self):
        with pytest.raises(ValueError, match="Invalid date: yesterday"):
            parse_iso_date("yesterday")

    def test_lazy_provider_builds_once(self):
        factory = MagicMock(return_value="client")
        provider = lazy_provider(factory)
        assert provider() == "client"
        assert provider() == "client"
        factory.assert_called_once()


class TestSearchMessages:

    def test_search_text(self, imessage_tools):
        assert imessage_tools.search_messages(search_text="dinner") == (
            "Found 1 message(s):\n\n"
            "[2024-01-16 12:00:00] alice@example.com: Family dinner? (1 attachment(s))"
        )

    def test_contact_and_sender(self, imessage_tools):
        result = imessage_tools.search_messages(contact_identifier="+15551234567", is_from_me=False)
        assert result == (
            "Found 2 message(s):\n\n"
            "[2024-01-15 12:02:00] +1 (555) 123-4567: Decoded body\n\n"
            "[2024-01-15 12:00:00] +1 (555) 123-4567: Hello there"
        )

    def test_unknown_contact(self, imessage_tools):
        assert imessage_tools.search_messages(contact_identifier="nobody@example.com") == (
            "No contact found with identifier: nobody@example.com"
        )

    def test_no_results(self, imessage_tools):
        assert imessage_tools.search_messages(search_text="zzz") == (
            "No messages found matching the search criteria."
        )

    def test_limit(self, imessage_tools):
        assert imessage_tools.search_messages(limit=2).startswith("Found 2 message(s):")

    def test_date_range(self, imessage_tools):
        result = imessage_tools.search_messages(start_date="2024-01-16", service="SMS")
        assert result == "Found 1 message(s):\n\n[2024-01-16 12:01:00] Me: [no text]"

    def test_invalid_date(self, imessage_tools):
        assert imessage_tools.search_messages(start_date="not-a-date") == (
            "Error searching messages: Invalid date: not-a-date"
        )

    def test_database_missing(self):
        tools = IMessageTools(missing_database)
        assert tools.search_messages(search_text="x") == (
            "Error searching messages: iMessage database not found at: /nowhere/chat.db"
        )


class TestRecentChats:

    def test_recent_chats(self, imessage_tools):
        result = imessage_tools.get_recent_chats()

        assert result.startswith("Recent chats (2):\n\n")
        assert (
            "Chat #2: Family (iMessage)\n"
            "  Participants: +15551234567, alice@example.com\n"
            "  Recent messages:\n"
            "    [2024-01-16 12:00:00] alice@example.com: Family dinner? (1 attachment(s))\n"
            "    [2024-01-16 12:01:00] Me: [no text]"
        ) in result
        assert (
            "Chat #1: +15551234567 (iMessage)\n"
            "  Participants: +15551234567\n"
            "  Recent messages:\n"
            "    [2024-01-15 12:00:00] +1 (555) 123-4567: Hello there\n"
            "    [2024-01-15 12:01:00] Me: Hi back\n"
            "    [2024-01-15 12:02:00] +1 (555) 123-4567: Decoded body"
        ) in result

    def test_limit(self, imessage_tools):
        result = imessage_tools.get_recent_chats(limit=1)
        assert result.startswith("Recent chats (1):")
        assert "Chat #1:" not in result

    def test_no_chats(self):
        client = MagicMock()
        client.get_recent_chats.return_value = []
        assert IMessageTools(lambda: client).get_recent_chats() == "No recent chats found."

    def test_previews_come_from_recent_chats(self, imessage_client):
        client = MagicMock(wraps=imessage_client)
        IMessageTools(lambda: client).get_recent_chats(limit=5)

        client.get_recent_chats.assert_called_once_with(5, preview_count=3)
        client.get_messages_for_chat.assert_not_called()

    def test_error(self):
        assert IMessageTools(missing_database).get_recent_chats().startswith(
            "Error getting recent chats: iMessage database not found"
        )


class TestChatHistory:

    def test_chat_history_is_chronological(self, imessage_tools):
        assert imessage_tools.get_chat_history(1) == (
            "Chat #1: +15551234567 (iMessage)\n"
            "Participants: +15551234567\n\n"
            "Message history (3 messages):\n\n"
            "[2024-01-15 12:00:00] +1 (555) 123-4567: Hello there\n"
            "[2024-01-15 12:01:00] Me: Hi back\n"
            "[2024-01-15 12:02:00] +1 (555) 123-4567: Decoded body"
        )

    def test_limit_keeps_latest(self, imessage_tools):
        result = imessage_tools.get_chat_history(1, limit=1)
        assert "Message history (1 messages)" in result
        assert result.endswith("Decoded body")

    def test_unknown_chat(self, imessage_tools):
        assert imessage_tools.get_chat_history(42) == "No chat found with ID: 42"

    def test_empty_chat(self):
        client = MagicMock()
        client.get_messages_for_chat.return_value = []
        assert IMessageTools(lambda: client).get_chat_history(7) == "No messages found in chat #7"


class TestMessagesByDate:

    def test_single_day(self, imessage_tools):
        assert imessage_tools.get_messages_by_date(date="2024-01-16") == (
            "Found 2 message(s) on 2024-01-16:\n\n"
            "Conversation with e:me@icloud.com (2 messages):\n"
            "  [2024-01-16 12:01:00] Me: [no text]\n"
            "  [2024-01-16 12:00:00] alice@example.com: Family dinner? (1 attachment(s))\n"
        )

    def test_range(self, imessage_tools):
        result = imessage_tools.get_messages_by_date(start_date="2024-01-15", end_date="2024-01-17")
        assert result.startswith("Found 5 message(s) from 2024-01-15 to 2024-01-17:")
        assert "Conversation with p:+15550000000 (3 messages):" in result
        assert "Conversation with e:me@icloud.com (2 messages):" in result

    def test_unknown_contact_does_not_filter(self, imessage_tools):
        result = imessage_tools.get_messages_by_date(date="2024-01-15", contact_identifier="nobody")
        assert result.startswith("Found 3 message(s) on 2024-01-15:")

    def test_contact_filter(self, imessage_tools):
        result = imessage_tools.get_messages_by_date(
            start_date="2024-01-15", contact_identifier="alice@example.com"
        )
        assert result.startswith("Found 2 message(s) from 2024-01-15 to now:")

    def test_day_window_includes_end_instant(self, imessage_tools):
        result = imessage_tools.get_messages_by_date(date="2024-01-15T12:00:00")
        assert result.startswith("Found 4 message(s) on 2024-01-15T12:00:00:")
        assert "Family dinner?" in result

    def test_no_messages_on_day(self, imessage_tools):
        assert imessage_tools.get_messages_by_date(date="2024-01-10") == "No messages found on 2024-01-10."

    def test_no_messages_in_range(self, imessage_tools):
        assert imessage_tools.get_messages_by_date(start_date="2030-01-01") == (
            "No messages found between 2030-01-01 and now."
        )

    def test_invalid_date(self, imessage_tools):
        assert imessage_tools.get_messages_by_date(date="soon") == (
            "Error getting messages by date: Invalid date: soon"
        )


class TestQueryDatabase:

    def test_table(self, database_tools):
        result = database_tools.query_database("SELECT ROWID, id FROM handle ORDER BY ROWID")
        assert result == (
            "Query returned 2 row(s):\n\n"
            "ROWID | id               \n"
            "------+------------------\n"
            "1     | +15551234567     \n"
            "2     | alice@example.com"
        )

    def test_rejects_writes(self, database_tools):
        assert database_tools.query_database("DELETE FROM message") == (
            "Error: Only SELECT queries are allowed. This is a read-only database."
        )

    def test_rejects_forbidden_keyword(self, database_tools):
        assert database_tools.query_database("SELECT 1; DROP TABLE chat") == (
            "Error: Query contains forbidden keyword: DROP. Only SELECT queries are allowed."
        )

    def test_sqlite_error(self, database_tools):
        result = database_tools.query_database("SELECT * FROM nope")
        assert result.startswith("Error executing query: iMessage query failed: no such table: nope")

    def test_no_results(self, database_tools):
        assert database_tools.query_database("SELECT * FROM message WHERE ROWID = 999") == (
            "Query executed successfully but returned no results."
        )

    def test_truncation_note(self, imessage_client):
        tools = DatabaseTools(lambda: imessage_client, display_rows=2)
        result = tools.query_database("SELECT ROWID FROM message ORDER BY ROWID")
        assert result.startswith("Query returned 5 row(s):")
        assert result.endswith("(Showing first 2 of 5 results)")
        assert "\n3" not in result

    def test_limit_passed_through(self, imessage_client):
        tools = DatabaseTools(lambda: imessage_client, max_rows=3)
        assert tools.query_database("SELECT ROWID FROM message", limit=100).startswith(
            "Query returned 3 row(s):"
        )

    def test_render_table_values(self):
        table = render_table([{"a": None, "b": b"\x00\x01\x02"}, {"a": 0, "b": "x"}])
        assert table.splitlines() == [
            "a | b        ",
            "--+----------",
            "  | <3 bytes>",
            "0 | x        ",
        ]


class TestContactsSearch:

    @pytest.mark.asyncio
    async def test_by_name(self):
        client = MagicMock()
        client.search_by_name = AsyncMock(return_value=[
            ContactMatch("John Doe", "555-1234"),
            ContactMatch("John Doe", "555-9999"),
        ])
        result = await ContactsTools(lambda: client).contacts_search(name="John")
        assert result == "John Doe - 555-1234\nJohn Doe - 555-9999"

    @pytest.mark.asyncio
    async def test_phone_takes_precedence(self):
        client = MagicMock()
        client.search_by_name = AsyncMock(return_value=[])
        client.search_by_phone = AsyncMock(return_value=[ContactMatch("Jane", "555-5678")])

        result = await ContactsTools(lambda: client).contacts_search(name="John", phone="5678")

        assert result == "Jane - 555-5678"
        client.search_by_name.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_matches(self):
        client = MagicMock()
        client.search_by_name = AsyncMock(return_value=[])
        result = await ContactsTools(lambda: client).contacts_search(name="Nobody")
        assert result == 'No contacts found matching "Nobody"'

    @pytest.mark.asyncio
    async def test_error(self):
        client = MagicMock()
        client.search_by_phone = AsyncMock(side_effect=AppleScriptPermissionError("not permitted"))
        result = await ContactsTools(lambda: client).contacts_search(phone="555")
        assert result == "Error searching contacts: not permitted"

    @pytest.mark.asyncio
    async def test_requires_query(self):
        client = MagicMock()
        result = await ContactsTools(lambda: client).contacts_search()
        assert result == "Provide a name or phone number to search for."
        client.search_by_name.assert_not_called()
