"""
MCP server assembly.

Builds a FastMCP server exposing the iMessage, raw query and Contacts tools,
and runs it over streamable HTTP or stdio.
"""

from typing import Optional

from fastmcp import FastMCP

from imessage_tools.config import ServerConfig
from imessage_tools.contacts.client import ContactsClient
from imessage_tools.imessage.client import IMessageClient
from imessage_tools.logger_config import get_logger
from imessage_tools.server.tools import (
    ContactsTools,
    DatabaseTools,
    IMessageTools,
    register_contacts_tools,
    register_database_tools,
    register_imessage_tools,
)
from imessage_tools.server.utils import lazy_provider

logger = get_logger(__name__)

SERVER_INSTRUCTIONS = (
    "Read-only access to the local macOS Messages database and the Contacts app. "
    "Use imessage_get_recent_chats to find chat IDs, imessage_search_messages and "
    "imessage_get_messages_by_date to find messages, and contacts_search to map "
    "names to phone numbers."
)


def create_server(
    config: Optional[ServerConfig] = None,
    imessage_client: Optional[IMessageClient] = None,
    contacts_client: Optional[ContactsClient] = None,
) -> FastMCP:
    """
    Create the MCP server with all tools registered.

    Clients that are not supplied are created on first use, so the server
    starts even when the Messages database is not readable yet; each tool
    call then reports the access error as its text response.

    Args:
        config: Server configuration (default: ServerConfig())
        imessage_client: Messages database client to use
        contacts_client: Contacts AppleScript client to use

    Returns:
        FastMCP: Configured server
    """
    config = config or ServerConfig()

    if imessage_client is not None:
        imessage_provider = lambda: imessage_client  # noqa: E731
    else:
        imessage_provider = lazy_provider(
            lambda: IMessageClient(str(config.resolved_imessage_db_path()))
        )

    if contacts_client is not None:
        contacts_provider = lambda: contacts_client  # noqa: E731
    else:
        contacts_provider = lazy_provider(
            lambda: ContactsClient(timeout=config.applescript_timeout_seconds)
        )

    mcp = FastMCP(config.server_name, instructions=SERVER_INSTRUCTIONS)

    register_contacts_tools(mcp, ContactsTools(contacts_provider))
    register_imessage_tools(mcp, IMessageTools(imessage_provider))
    register_database_tools(mcp, DatabaseTools(
        imessage_provider,
        default_rows=config.query_default_rows,
        max_rows=config.query_max_rows,
        display_rows=config.query_display_rows,
    ))

    logger.info(f"MCP server '{config.server_name}' created")
    return mcp


def run_server(config: ServerConfig) -> None:
    """Run the server on the configured transport until interrupted"""
    mcp = create_server(config)

    if config.transport == "stdio":
        logger.info("Starting MCP server on stdio")
        mcp.run(transport="stdio")
        return

    logger.info(f"Starting MCP server on http://{config.host}:{config.port}/mcp")
    mcp.run(transport="http", host=config.host, port=config.port, stateless_http=True)
