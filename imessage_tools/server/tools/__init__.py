"""MCP tool registrations"""

from .contacts import ContactsTools, register_contacts_tools
from .database import DatabaseTools, register_database_tools
from .imessage import IMessageTools, register_imessage_tools

__all__ = [
    'ContactsTools',
    'DatabaseTools',
    'IMessageTools',
    'register_contacts_tools',
    'register_database_tools',
    'register_imessage_tools',
]
