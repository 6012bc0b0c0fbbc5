"""
Custom exceptions for imessage_tools.

This module defines the error types raised by the SDK clients and the
AppleScript runner. The attributedBody decoder never raises; the MCP
layer converts every exception into a text error response.
"""


class IMessageToolsError(Exception):
    """Base exception for all imessage_tools errors."""
    pass


class DatabaseError(IMessageToolsError):
    """Raised when a macOS SQLite database cannot be used."""
    pass


class DatabaseNotFoundError(DatabaseError):
    """Raised when the database file does not exist at the configured path."""
    pass


class DatabaseAccessError(DatabaseError):
    """Raised when the database exists but cannot be opened or queried."""
    pass


class QueryValidationError(IMessageToolsError):
    """Raised when a raw SQL query is not a read-only SELECT statement."""
    pass


class AppleScriptError(IMessageToolsError):
    """Raised when osascript exits with an error."""
    pass


class AppleScriptPermissionError(AppleScriptError):
    """Raised when macOS denies automation access to the target application."""
    pass


class AppleScriptTimeoutError(AppleScriptError):
    """Raised when an AppleScript does not finish within its timeout."""
    pass
