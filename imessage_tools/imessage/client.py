"""iMessage client - read-only queries over the macOS Messages database (chat.db)"""

import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from imessage_tools.exceptions import DatabaseAccessError, DatabaseNotFoundError
from imessage_tools.imessage.decoder import AttributedBodyDecoder, extract_message_text
from imessage_tools.imessage.models import (
    Attachment,
    Chat,
    ChatFilter,
    ChatWithParticipants,
    ConversationStats,
    EnrichedMessage,
    Handle,
    HandleMessageCounts,
    MessageFilter,
)
from imessage_tools.imessage.query_guard import apply_row_limit, validate_read_only_query
from imessage_tools.imessage.utils import (
    apple_time_to_datetime,
    datetime_to_apple_time,
    get_default_database_path,
    validate_database_path,
)
from imessage_tools.logger_config import get_logger

logger = get_logger(__name__)

MESSAGE_SELECT = """
    SELECT
        m.*,
        h.id AS handle_identifier,
        h.service AS handle_service,
        h.country AS handle_country
    FROM message m
    LEFT JOIN handle h ON m.handle_id = h.ROWID
"""

PARTICIPANTS_QUERY = """
    SELECT h.*
    FROM handle h
    INNER JOIN chat_handle_join chj ON h.ROWID = chj.handle_id
    WHERE chj.chat_id = ?
    ORDER BY h.ROWID
"""


def open_sqlite_database(db_path: Path, readonly: bool = True) -> sqlite3.Connection:
    """Open a SQLite database, read-only unless asked otherwise."""
    try:
        if readonly:
            conn = sqlite3.connect(
                f"{db_path.resolve().as_uri()}?mode=ro", uri=True, check_same_thread=False
            )
        else:
            conn = sqlite3.connect(str(db_path), check_same_thread=False)
    except sqlite3.Error as e:
        raise DatabaseAccessError(
            f"Failed to open database at {db_path}: {e}\n"
            "You may need to grant Full Disk Access permission."
        ) from e

    conn.row_factory = sqlite3.Row
    return conn


class IMessageClient:
    """Main client for querying the iMessage database"""

    def __init__(self, database_path: Optional[str] = None, readonly: bool = True):
        """
        Open the iMessage database.

        Args:
            database_path: Path to chat.db (default: ~/Library/Messages/chat.db)
            readonly: Open the database in read-only mode (default: True)

        Raises:
            DatabaseNotFoundError: If the database file does not exist
            DatabaseAccessError: If the database cannot be opened
        """
        self.database_path = Path(database_path or get_default_database_path()).expanduser()

        if not validate_database_path(self.database_path):
            raise DatabaseNotFoundError(
                f"iMessage database not found at: {self.database_path}\n"
                "Make sure:\n"
                "1. You're running on macOS\n"
                "2. iMessage is enabled on your Mac\n"
                "3. You have granted Full Disk Access to your terminal/app in "
                "System Settings > Privacy & Security > Full Disk Access"
            )

        self.conn = open_sqlite_database(self.database_path, readonly=readonly)
        self.decoder = AttributedBodyDecoder()
        logger.info(f"Opened iMessage database at {self.database_path}")

    def __enter__(self) -> 'IMessageClient':
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
            raise DatabaseAccessError(f"iMessage query failed: {e}") from e

    def _fetchone(self, query: str, params: Sequence[Any] = ()) -> Optional[sqlite3.Row]:
        try:
            return self.conn.execute(query, tuple(params)).fetchone()
        except sqlite3.Error as e:
            raise DatabaseAccessError(f"iMessage query failed: {e}") from e

    # Messages

    def get_messages(self, message_filter: Optional[MessageFilter] = None) -> List[EnrichedMessage]:
        """
        Get messages, newest first, with optional filtering.

        Args:
            message_filter: Filter criteria (default: no filtering)

        Returns:
            List of enriched messages
        """
        f = message_filter or MessageFilter()
        query = MESSAGE_SELECT + " WHERE 1=1"
        params: List[Any] = []

        if f.chat_id is not None:
            query += " AND m.ROWID IN (SELECT message_id FROM chat_message_join WHERE chat_id = ?)"
            params.append(f.chat_id)

        if f.handle_id is not None:
            query += " AND m.handle_id = ?"
            params.append(f.handle_id)

        if f.is_from_me is not None:
            query += " AND m.is_from_me = ?"
            params.append(1 if f.is_from_me else 0)

        if f.service:
            query += " AND m.service = ?"
            params.append(f.service)

        if f.search_text:
            query += " AND m.text LIKE ?"
            params.append(f"%{f.search_text}%")

        if f.start_date:
            query += " AND m.date >= ?"
            params.append(datetime_to_apple_time(f.start_date))

        if f.end_date:
            query += " AND m.date <= ?"
            params.append(datetime_to_apple_time(f.end_date))

        query += " ORDER BY m.date DESC"

        if f.limit:
            query += " LIMIT ?"
            params.append(f.limit)

        if f.offset:
            if not f.limit:
                query += " LIMIT -1"
            query += " OFFSET ?"
            params.append(f.offset)

        rows = self._fetchall(query, params)
        logger.debug(f"get_messages returned {len(rows)} rows")
        return [self._enrich_message(row) for row in rows]

    def get_message_by_id(self, message_id: int) -> Optional[EnrichedMessage]:
        """Get a single message by ROWID"""
        row = self._fetchone(MESSAGE_SELECT + " WHERE m.ROWID = ?", (message_id,))
        return self._enrich_message(row) if row else None

    def get_messages_for_chat(self, chat_id: int, limit: Optional[int] = None) -> List[EnrichedMessage]:
        """Get messages for a specific chat, newest first"""
        return self.get_messages(MessageFilter(chat_id=chat_id, limit=limit))

    # Chats

    def get_chats(self, chat_filter: Optional[ChatFilter] = None) -> List[Chat]:
        """Get chats with optional filtering, newest first"""
        f = chat_filter or ChatFilter()
        query = "SELECT * FROM chat WHERE 1=1"
        params: List[Any] = []

        if f.chat_identifier:
            query += " AND chat_identifier = ?"
            params.append(f.chat_identifier)

        if f.display_name:
            query += " AND display_name LIKE ?"
            params.append(f"%{f.display_name}%")

        if f.is_group is not None:
            if f.is_group:
                query += " AND chat_identifier LIKE 'chat%'"
            else:
                query += " AND chat_identifier NOT LIKE 'chat%'"

        query += " ORDER BY ROWID DESC"

        if f.limit:
            query += " LIMIT ?"
            params.append(f.limit)

        if f.offset:
            if not f.limit:
                query += " LIMIT -1"
            query += " OFFSET ?"
            params.append(f.offset)

        return [Chat.from_row(row) for row in self._fetchall(query, params)]

    def get_chat_by_id(self, chat_id: int) -> Optional[ChatWithParticipants]:
        """Get a chat by ROWID with its participants"""
        row = self._fetchone("SELECT * FROM chat WHERE ROWID = ?", (chat_id,))
        if not row:
            return None
        return ChatWithParticipants.from_chat(
            Chat.from_row(row), self.get_participants_for_chat(chat_id)
        )

    def get_participants_for_chat(self, chat_id: int) -> List[Handle]:
        """Get all participants for a chat"""
        return [Handle.from_row(row) for row in self._fetchall(PARTICIPANTS_QUERY, (chat_id,))]

    def get_recent_chats(self, limit: int = 20, preview_count: int = 1) -> List[ChatWithParticipants]:
        """
        Get chats ordered by their most recent message.

        Each chat carries its newest ``preview_count`` messages, newest first,
        in ``recent_messages``; ``last_message`` is the first of them.
        """
        rows = self._fetchall(
            """
            SELECT c.*, MAX(cmj.message_date) AS last_message_date
            FROM chat c
            INNER JOIN chat_message_join cmj ON c.ROWID = cmj.chat_id
            GROUP BY c.ROWID
            ORDER BY last_message_date DESC
            LIMIT ?
            """,
            (limit,),
        )

        chats = []
        for row in rows:
            chat = Chat.from_row(row)
            recent_messages = self.get_messages_for_chat(chat.rowid, max(preview_count, 1))
            chats.append(
                ChatWithParticipants.from_chat(
                    chat,
                    self.get_participants_for_chat(chat.rowid),
                    recent_messages[0] if recent_messages else None,
                    recent_messages,
                )
            )
        return chats

    def get_conversation_stats(self, chat_id: Optional[int] = None) -> ConversationStats:
        """Get message counts and date range, for one chat or the whole database"""
        query = """
            SELECT
                COUNT(*) AS total,
                SUM(CASE WHEN is_from_me = 1 THEN 1 ELSE 0 END) AS sent,
                SUM(CASE WHEN is_from_me = 0 THEN 1 ELSE 0 END) AS received,
                MIN(date) AS first_date,
                MAX(date) AS last_date
            FROM message
        """
        params: List[Any] = []
        if chat_id is not None:
            query += " WHERE ROWID IN (SELECT message_id FROM chat_message_join WHERE chat_id = ?)"
            params.append(chat_id)

        row = self._fetchone(query, params)
        return ConversationStats(
            total_messages=row["total"] or 0,
            sent_messages=row["sent"] or 0,
            received_messages=row["received"] or 0,
            first_message_date=(
                apple_time_to_datetime(row["first_date"]) if row["first_date"] is not None else None
            ),
            last_message_date=(
                apple_time_to_datetime(row["last_date"]) if row["last_date"] is not None else None
            ),
        )

    # Handles

    def get_handles(self) -> List[Handle]:
        """Get all handles (contacts)"""
        return [Handle.from_row(row) for row in self._fetchall("SELECT * FROM handle ORDER BY ROWID")]

    def get_handle_by_id(self, handle_id: int) -> Optional[Handle]:
        """Get a handle by ROWID"""
        row = self._fetchone("SELECT * FROM handle WHERE ROWID = ?", (handle_id,))
        return Handle.from_row(row) if row else None

    def search_handles(self, search_term: str) -> List[Handle]:
        """Search handles by partial phone number or email"""
        pattern = f"%{search_term}%"
        rows = self._fetchall(
            "SELECT * FROM handle WHERE id LIKE ? OR uncanonicalized_id LIKE ? ORDER BY ROWID",
            (pattern, pattern),
        )
        return [Handle.from_row(row) for row in rows]

    def get_handle_by_identifier(self, identifier: str) -> Optional[Handle]:
        """Get a handle by exact phone number or email"""
        row = self._fetchone(
            "SELECT * FROM handle WHERE id = ? OR uncanonicalized_id = ? LIMIT 1",
            (identifier, identifier),
        )
        return Handle.from_row(row) if row else None

    def get_chats_for_handle(self, handle_id: int) -> List[ChatWithParticipants]:
        """Get all chats a handle participates in"""
        rows = self._fetchall(
            """
            SELECT DISTINCT c.*
            FROM chat c
            INNER JOIN chat_handle_join chj ON c.ROWID = chj.chat_id
            WHERE chj.handle_id = ?
            ORDER BY c.ROWID DESC
            """,
            (handle_id,),
        )
        return [
            ChatWithParticipants.from_chat(chat, self.get_participants_for_chat(chat.rowid))
            for chat in (Chat.from_row(row) for row in rows)
        ]

    def get_message_count_for_handle(self, handle_id: int) -> HandleMessageCounts:
        """Get message counts for a specific handle"""
        row = self._fetchone(
            """
            SELECT
                COUNT(*) AS total,
                SUM(CASE WHEN is_from_me = 1 THEN 1 ELSE 0 END) AS sent,
                SUM(CASE WHEN is_from_me = 0 THEN 1 ELSE 0 END) AS received
            FROM message
            WHERE handle_id = ?
            """,
            (handle_id,),
        )
        return HandleMessageCounts(
            total=row["total"] or 0,
            sent=row["sent"] or 0,
            received=row["received"] or 0,
        )

    # Attachments

    def get_attachments_for_message(self, message_id: int) -> List[Attachment]:
        """Get attachments for a message"""
        rows = self._fetchall(
            """
            SELECT a.*
            FROM attachment a
            INNER JOIN message_attachment_join maj ON a.ROWID = maj.attachment_id
            WHERE maj.message_id = ?
            """,
            (message_id,),
        )
        return [Attachment.from_row(row) for row in rows]

    # Raw queries

    def execute_read_query(
        self,
        query: str,
        limit: Optional[int] = None,
        default_limit: int = 100,
        max_limit: int = 1000,
    ) -> List[Dict[str, Any]]:
        """
        Run a validated read-only SQL query.

        Raises:
            QueryValidationError: If the query is not a SELECT/WITH statement
            DatabaseAccessError: If SQLite rejects the query
        """
        query = validate_read_only_query(query)
        limited_query = apply_row_limit(query, limit, default_limit, max_limit)
        logger.debug(f"Executing read query: {limited_query}")
        return [dict(row) for row in self._fetchall(limited_query)]

    def get_decode_stats(self) -> Dict[str, object]:
        """attributedBody decoding statistics for this client"""
        return self.decoder.get_decode_stats()

    def _resolve_text(self, row: sqlite3.Row) -> Optional[str]:
        return extract_message_text(row["text"], row["attributedBody"], self.decoder)

    def _enrich_message(self, row: sqlite3.Row) -> EnrichedMessage:
        """Build a message with resolved text, sender handle and attachments"""
        message = EnrichedMessage.from_row(row)
        message.text = self._resolve_text(row)

        if row["handle_identifier"]:
            message.handle = Handle(
                rowid=row["handle_id"],
                id=row["handle_identifier"],
                country=row["handle_country"],
                service=row["handle_service"],
            )

        message.attachments = self.get_attachments_for_message(message.rowid)
        return message
