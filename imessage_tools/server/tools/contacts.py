"""Contacts tools for the MCP server"""

from typing import Annotated, Callable, Optional

from fastmcp import FastMCP
from pydantic import Field

from imessage_tools.contacts.client import ContactsClient
from imessage_tools.logger_config import get_logger
from imessage_tools.server.utils import format_tool_error

logger = get_logger(__name__)


class ContactsTools:
    """Tool implementations backed by the Contacts app"""

    def __init__(self, client_provider: Callable[[], ContactsClient]):
        self._client_provider = client_provider

    async def contacts_search(self, name: Optional[str] = None, phone: Optional[str] = None) -> str:
        """Search by phone when given, otherwise by name"""
        query = phone or name
        if not query:
            return "Provide a name or phone number to search for."

        logger.info(f"contacts_search called: name={name!r} phone={phone!r}")

        try:
            client = self._client_provider()
            if phone:
                contacts = await client.search_by_phone(phone)
            else:
                contacts = await client.search_by_name(name)

            logger.info(f"contacts_search results: query={query!r} count={len(contacts)}")

            if not contacts:
                return f'No contacts found matching "{query}"'

            return "\n".join(str(contact) for contact in contacts)
        except Exception as e:
            logger.error(f"contacts_search error: {e}")
            return format_tool_error("Error searching contacts", e)


def register_contacts_tools(mcp: FastMCP, tools: ContactsTools) -> None:
    """Register contact-related tools with the MCP server"""

    @mcp.tool(
        name="contacts_search",
        description=(
            "Search contacts by name or phone number. "
            "Automatically detects search type if not specified."
        ),
    )
    async def contacts_search(
        name: Annotated[Optional[str], Field(description="Name or part of a name")] = None,
        phone: Annotated[Optional[str], Field(description="Phone number or part of one")] = None,
    ) -> str:
        return await tools.contacts_search(name=name, phone=phone)
