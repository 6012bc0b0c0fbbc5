"""
imessage_tools - read-only access to macOS Messages and Contacts data.

Includes an attributedBody decoder for message text that chat.db stores only
as a serialized NSAttributedString, SDK clients for the Messages and
AddressBook databases, AppleScript helpers and an MCP server.
"""

__version__ = "0.1.0"
