"""iMessage tools for the MCP server"""

from datetime import timedelta
from typing import Annotated, Callable, Dict, List, Optional

from fastmcp import FastMCP
from pydantic import Field

from imessage_tools.imessage.client import IMessageClient
from imessage_tools.imessage.formatting import format_chat, format_message
from imessage_tools.imessage.models import EnrichedMessage, MessageFilter
from imessage_tools.logger_config import get_logger
from imessage_tools.server.utils import format_tool_error, parse_iso_date

logger = get_logger(__name__)

DEFAULT_SEARCH_LIMIT = 50
DEFAULT_RECENT_CHATS_LIMIT = 20
DEFAULT_HISTORY_LIMIT = 100
DEFAULT_DATE_LIMIT = 100
RECENT_PREVIEW_COUNT = 3


class IMessageTools:
    """Tool implementations backed by the Messages database"""

    def __init__(self, client_provider: Callable[[], IMessageClient]):
        self._client_provider = client_provider

    def search_messages(
        self,
        search_text: Optional[str] = None,
        contact_identifier: Optional[str] = None,
        is_from_me: Optional[bool] = None,
        service: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> str:
        logger.info(
            f"imessage_search_messages called: search_text={search_text!r} "
            f"contact={contact_identifier!r} is_from_me={is_from_me} service={service!r} "
            f"start={start_date!r} end={end_date!r} limit={limit}"
        )

        try:
            client = self._client_provider()

            handle_id = None
            if contact_identifier:
                handle = client.get_handle_by_identifier(contact_identifier)
                if handle is None:
                    return f"No contact found with identifier: {contact_identifier}"
                handle_id = handle.rowid

            messages = client.get_messages(MessageFilter(
                search_text=search_text,
                handle_id=handle_id,
                is_from_me=is_from_me,
                service=service,
                start_date=parse_iso_date(start_date),
                end_date=parse_iso_date(end_date),
                limit=limit or DEFAULT_SEARCH_LIMIT,
            ))

            logger.info(f"imessage_search_messages results: count={len(messages)}")

            if not messages:
                return "No messages found matching the search criteria."

            formatted = "\n\n".join(format_message(msg) for msg in messages)
            return f"Found {len(messages)} message(s):\n\n{formatted}"
        except Exception as e:
            logger.error(f"imessage_search_messages error: {e}")
            return format_tool_error("Error searching messages", e)

    def get_recent_chats(self, limit: Optional[int] = None) -> str:
        logger.info(f"imessage_get_recent_chats called: limit={limit}")

        try:
            client = self._client_provider()
            chats = client.get_recent_chats(
                limit or DEFAULT_RECENT_CHATS_LIMIT, preview_count=RECENT_PREVIEW_COUNT
            )

            logger.info(f"imessage_get_recent_chats results: count={len(chats)}")

            if not chats:
                return "No recent chats found."

            sections = []
            for chat in chats:
                participant_names = ", ".join(p.id for p in chat.participants)
                section = f"{format_chat(chat)}\n  Participants: {participant_names}"

                # Newest first from the database, shown oldest first
                if chat.recent_messages:
                    section += "\n  Recent messages:"
                    for msg in reversed(chat.recent_messages):
                        section += f"\n    {format_message(msg)}"
                sections.append(section)

            return f"Recent chats ({len(chats)}):\n\n" + "\n\n".join(sections)
        except Exception as e:
            logger.error(f"imessage_get_recent_chats error: {e}")
            return format_tool_error("Error getting recent chats", e)

    def get_chat_history(self, chat_id: int, limit: Optional[int] = None) -> str:
        logger.info(f"imessage_get_chat_history called: chat_id={chat_id} limit={limit}")

        try:
            client = self._client_provider()

            chat = client.get_chat_by_id(chat_id)
            if chat is None:
                return f"No chat found with ID: {chat_id}"

            messages = client.get_messages_for_chat(chat_id, limit or DEFAULT_HISTORY_LIMIT)

            logger.info(f"imessage_get_chat_history results: chat_id={chat_id} count={len(messages)}")

            if not messages:
                return f"No messages found in chat #{chat_id}"

            participant_names = ", ".join(p.id for p in chat.participants)
            formatted = "\n".join(format_message(msg) for msg in reversed(messages))
            return (
                f"{format_chat(chat)}\nParticipants: {participant_names}\n\n"
                f"Message history ({len(messages)} messages):\n\n{formatted}"
            )
        except Exception as e:
            logger.error(f"imessage_get_chat_history error: {e}")
            return format_tool_error("Error getting chat history", e)

    def get_messages_by_date(
        self,
        date: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        contact_identifier: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> str:
        logger.info(
            f"imessage_get_messages_by_date called: date={date!r} start={start_date!r} "
            f"end={end_date!r} contact={contact_identifier!r} limit={limit}"
        )

        try:
            client = self._client_provider()

            if date:
                start = parse_iso_date(date)
                end = start + timedelta(days=1)
            else:
                start = parse_iso_date(start_date)
                end = parse_iso_date(end_date)

            # An unknown contact widens the search instead of failing it
            handle_id = None
            if contact_identifier:
                handle = client.get_handle_by_identifier(contact_identifier)
                if handle is not None:
                    handle_id = handle.rowid

            messages = client.get_messages(MessageFilter(
                start_date=start,
                end_date=end,
                handle_id=handle_id,
                limit=limit or DEFAULT_DATE_LIMIT,
            ))

            logger.info(f"imessage_get_messages_by_date results: count={len(messages)}")

            if not messages:
                if date:
                    return f"No messages found on {date}."
                return f"No messages found between {start_date or 'start'} and {end_date or 'now'}."

            output = []
            for account, account_messages in group_by_account(messages).items():
                output.append(f"Conversation with {account} ({len(account_messages)} messages):")
                output.append("\n".join(f"  {format_message(msg)}" for msg in account_messages))
                output.append("")

            date_desc = f"on {date}" if date else f"from {start_date or 'start'} to {end_date or 'now'}"
            return f"Found {len(messages)} message(s) {date_desc}:\n\n" + "\n".join(output)
        except Exception as e:
            logger.error(f"imessage_get_messages_by_date error: {e}")
            return format_tool_error("Error getting messages by date", e)


def group_by_account(messages: List[EnrichedMessage]) -> Dict[str, List[EnrichedMessage]]:
    """Group messages by account, keeping first-seen order"""
    groups: Dict[str, List[EnrichedMessage]] = {}
    for msg in messages:
        groups.setdefault(msg.account or "Unknown", []).append(msg)
    return groups


def register_imessage_tools(mcp: FastMCP, tools: IMessageTools) -> None:
    """Register iMessage-related tools with the MCP server"""

    @mcp.tool(
        name="imessage_search_messages",
        description=(
            "Search iMessage conversations by text content, contact, date range, or other filters. "
            "Returns matching messages with sender, timestamp, and content. "
            "Use this to find specific messages or conversations."
        ),
    )
    def imessage_search_messages(
        search_text: Annotated[Optional[str], Field(description="Text to search for in message content")] = None,
        contact_identifier: Annotated[Optional[str], Field(
            description="Phone number or email of contact (e.g., '+1234567890' or 'user@example.com')"
        )] = None,
        is_from_me: Annotated[Optional[bool], Field(
            description="Filter by sender: true for messages you sent, false for received"
        )] = None,
        service: Annotated[Optional[str], Field(description="Service type: 'iMessage' or 'SMS'")] = None,
        start_date: Annotated[Optional[str], Field(
            description="ISO 8601 date string for earliest message (e.g., '2024-01-01')"
        )] = None,
        end_date: Annotated[Optional[str], Field(
            description="ISO 8601 date string for latest message (e.g., '2024-12-31')"
        )] = None,
        limit: Annotated[Optional[int], Field(
            description="Maximum number of results to return (default: 50)"
        )] = None,
    ) -> str:
        return tools.search_messages(
            search_text=search_text,
            contact_identifier=contact_identifier,
            is_from_me=is_from_me,
            service=service,
            start_date=start_date,
            end_date=end_date,
            limit=limit,
        )

    @mcp.tool(
        name="imessage_get_recent_chats",
        description=(
            "Get a list of recent iMessage conversations, ordered by most recent activity. "
            "Returns chat details including participants and the last message preview. "
            "Use this to see what conversations are active."
        ),
    )
    def imessage_get_recent_chats(
        limit: Annotated[Optional[int], Field(
            description="Maximum number of chats to return (default: 20)"
        )] = None,
    ) -> str:
        return tools.get_recent_chats(limit=limit)

    @mcp.tool(
        name="imessage_get_chat_history",
        description=(
            "Get the full message history for a specific chat/conversation. "
            "Requires a chat ID (obtained from imessage_get_recent_chats or imessage_query_database). "
            "Returns all messages in chronological order with sender and timestamp."
        ),
    )
    def imessage_get_chat_history(
        chat_id: Annotated[int, Field(description="The chat ID (ROWID) to get history for")],
        limit: Annotated[Optional[int], Field(
            description="Maximum number of messages to return (default: 100)"
        )] = None,
    ) -> str:
        return tools.get_chat_history(chat_id=chat_id, limit=limit)

    @mcp.tool(
        name="imessage_get_messages_by_date",
        description=(
            "Get all messages sent or received on a specific date or date range. "
            "Useful for recalling 'What did I discuss last Tuesday?' or 'Show me messages from last week'. "
            "Returns messages with sender, timestamp, and content."
        ),
    )
    def imessage_get_messages_by_date(
        date: Annotated[Optional[str], Field(
            description="Specific date in ISO 8601 format (e.g., '2024-01-15'). Gets all messages from that day."
        )] = None,
        start_date: Annotated[Optional[str], Field(
            description="Start date for date range in ISO 8601 format (e.g., '2024-01-01')"
        )] = None,
        end_date: Annotated[Optional[str], Field(
            description="End date for date range in ISO 8601 format (e.g., '2024-01-31')"
        )] = None,
        contact_identifier: Annotated[Optional[str], Field(
            description="Optional: filter by specific contact (phone or email)"
        )] = None,
        limit: Annotated[Optional[int], Field(
            description="Maximum number of results to return (default: 100)"
        )] = None,
    ) -> str:
        return tools.get_messages_by_date(
            date=date,
            start_date=start_date,
            end_date=end_date,
            contact_identifier=contact_identifier,
            limit=limit,
        )
