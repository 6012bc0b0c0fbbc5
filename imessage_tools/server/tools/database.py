"""Raw read-only SQL access to the Messages database for the MCP server"""

from typing import Annotated, Any, Callable, Dict, List, Optional

from fastmcp import FastMCP
from pydantic import Field

from imessage_tools.exceptions import QueryValidationError
from imessage_tools.imessage.client import IMessageClient
from imessage_tools.logger_config import get_logger
from imessage_tools.server.utils import format_tool_error

logger = get_logger(__name__)

QUERY_DATABASE_DESCRIPTION = """
Direct SQL query access to the iMessage database for advanced queries.

IMPORTANT: This database is READ-ONLY. Do NOT attempt INSERT, UPDATE, DELETE, or any write operations.

## Database Schema

### Main Tables:

**message** - All iMessage and SMS messages
- ROWID (INTEGER PRIMARY KEY) - Unique message ID
- guid (TEXT) - Global unique identifier
- text (TEXT) - Message content (may be null for media-only messages)
- handle_id (INTEGER) - Foreign key to handle table (sender/recipient)
- subject (TEXT) - Message subject (rarely used)
- service (TEXT) - 'iMessage' or 'SMS'
- account (TEXT) - Account identifier
- date (INTEGER) - Apple timestamp (nanoseconds since 2001-01-01 00:00:00 UTC)
- date_read (INTEGER) - When message was read (Apple timestamp)
- date_delivered (INTEGER) - When message was delivered (Apple timestamp)
- is_from_me (INTEGER) - 1 if sent by user, 0 if received
- is_read (INTEGER) - 1 if read, 0 if unread
- is_sent (INTEGER) - 1 if successfully sent
- is_delivered (INTEGER) - 1 if delivered to recipient
- is_audio_message (INTEGER) - 1 if audio message
- cache_roomnames (TEXT) - Cached chat names
- attributedBody (BLOB) - Rich text content (newer macOS versions)

**handle** - Contacts (phone numbers and emails)
- ROWID (INTEGER PRIMARY KEY) - Unique handle ID
- id (TEXT) - Phone number or email address
- country (TEXT) - Country code
- service (TEXT) - 'iMessage' or 'SMS'
- uncanonicalized_id (TEXT) - Original unformatted identifier

**chat** - Conversations (individual or group)
- ROWID (INTEGER PRIMARY KEY) - Unique chat ID
- guid (TEXT) - Global unique identifier
- style (INTEGER) - Chat style (43 = group, 45 = individual)
- chat_identifier (TEXT) - Chat identifier (phone/email or group ID)
- service_name (TEXT) - 'iMessage' or 'SMS'
- display_name (TEXT) - Chat display name
- is_archived (INTEGER) - 1 if archived

**attachment** - File attachments (photos, videos, documents)
- ROWID (INTEGER PRIMARY KEY) - Unique attachment ID
- filename (TEXT) - Full file path on disk
- mime_type (TEXT) - MIME type (e.g., 'image/jpeg')
- transfer_name (TEXT) - Original filename
- total_bytes (INTEGER) - File size in bytes
- created_date (INTEGER) - Creation timestamp (Apple time)

### Join Tables:

**chat_message_join** - chat_id, message_id, message_date
**chat_handle_join** - chat_id, handle_id (chat participants)
**message_attachment_join** - message_id, attachment_id

## Apple Timestamp Conversion

Apple timestamps are nanoseconds since 2001-01-01 00:00:00 UTC.

```sql
-- Apple time to Unix seconds:
(date / 1000000000) + 978307200

-- Readable date:
strftime('%Y-%m-%d %H:%M:%S', date / 1000000000 + 978307200, 'unixepoch')
```

## Example Queries

**Get recent messages with sender info:**
```sql
SELECT m.ROWID, m.text, m.is_from_me, m.date, h.id as sender
FROM message m
LEFT JOIN handle h ON m.handle_id = h.ROWID
ORDER BY m.date DESC
LIMIT 50
```

**Count messages by contact:**
```sql
SELECT h.id as contact, COUNT(*) as message_count
FROM message m
JOIN handle h ON m.handle_id = h.ROWID
WHERE m.is_from_me = 0
GROUP BY h.id
ORDER BY message_count DESC
LIMIT 20
```

## Safety Notes
- Always use SELECT statements only
- Add LIMIT clauses to prevent returning too much data
- Use ORDER BY date DESC for most recent results
- Remember dates are in Apple timestamp format
- Message text stored only in attributedBody is not decoded here; use the message tools for that
"""


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return f"<{len(value)} bytes>"
    return str(value)


def render_table(rows: List[Dict[str, Any]], max_rows: int = 50) -> str:
    """
    Render query rows as an aligned text table.

    Column widths cover every row, but at most ``max_rows`` rows are shown.
    """
    columns = list(rows[0].keys())
    widths = [
        max([len(col)] + [len(_cell(row.get(col))) for row in rows])
        for col in columns
    ]

    header = " | ".join(col.ljust(width) for col, width in zip(columns, widths))
    separator = "-+-".join("-" * width for width in widths)
    body = [
        " | ".join(_cell(row.get(col)).ljust(width) for col, width in zip(columns, widths))
        for row in rows[:max_rows]
    ]
    return "\n".join([header, separator] + body)


class DatabaseTools:
    """Raw query tool backed by the Messages database"""

    def __init__(
        self,
        client_provider: Callable[[], IMessageClient],
        default_rows: int = 100,
        max_rows: int = 1000,
        display_rows: int = 50,
    ):
        self._client_provider = client_provider
        self.default_rows = default_rows
        self.max_rows = max_rows
        self.display_rows = display_rows

    def query_database(self, query: str, limit: Optional[int] = None) -> str:
        logger.info(f"imessage_query_database called: query={query!r} limit={limit}")

        try:
            client = self._client_provider()
            rows = client.execute_read_query(
                query, limit, default_limit=self.default_rows, max_limit=self.max_rows
            )
        except QueryValidationError as e:
            logger.warning(f"imessage_query_database rejected query: {e}")
            return f"Error: {e}"
        except Exception as e:
            logger.error(f"imessage_query_database error: {e}")
            return format_tool_error("Error executing query", e)

        logger.info(f"imessage_query_database results: rows={len(rows)}")

        if not rows:
            return "Query executed successfully but returned no results."

        table = render_table(rows, self.display_rows)
        truncated_note = ""
        if len(rows) > self.display_rows:
            truncated_note = f"\n\n(Showing first {self.display_rows} of {len(rows)} results)"

        return f"Query returned {len(rows)} row(s):\n\n{table}{truncated_note}"


def register_database_tools(mcp: FastMCP, tools: DatabaseTools) -> None:
    """Register the raw query tool with the MCP server"""

    @mcp.tool(name="imessage_query_database", description=QUERY_DATABASE_DESCRIPTION)
    def imessage_query_database(
        query: Annotated[str, Field(description="SQL query to execute (SELECT only)")],
        limit: Annotated[Optional[int], Field(
            description="Maximum number of rows to return (default: 100, max: 1000)"
        )] = None,
    ) -> str:
        return tools.query_database(query=query, limit=limit)
