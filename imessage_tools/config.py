"""
Configuration management for imessage_tools.

This module holds the settings shared by the SDK clients and the MCP
server: database locations, server transport, AppleScript timeouts,
query limits and logging.
"""

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

VALID_TRANSPORTS = ("http", "stdio")
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ServerConfig(BaseModel):
    """Configuration model for the SDK clients and the MCP server."""

    # Database locations (None means the macOS default location)
    imessage_db_path: Optional[str] = Field(
        default=None,
        description="Path to the iMessage chat.db database"
    )

    contacts_db_path: Optional[str] = Field(
        default=None,
        description="Path to the Contacts AddressBook database"
    )

    # Server settings
    server_name: str = Field(
        default="imessage-tools",
        description="Name advertised by the MCP server"
    )

    transport: str = Field(
        default="http",
        description="MCP transport: 'http' or 'stdio'"
    )

    host: str = Field(
        default="127.0.0.1",
        description="Host for the HTTP transport"
    )

    port: int = Field(
        default=3000,
        description="Port for the HTTP transport"
    )

    # AppleScript settings
    applescript_timeout_seconds: int = Field(
        default=30,
        description="Timeout for osascript invocations in seconds"
    )

    # Raw query settings
    query_default_rows: int = Field(
        default=100,
        description="Row limit applied to raw SQL queries without a LIMIT clause"
    )

    query_max_rows: int = Field(
        default=1000,
        description="Upper bound on the row limit for raw SQL queries"
    )

    query_display_rows: int = Field(
        default=50,
        description="Maximum number of rows rendered in a query result table"
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Root log level"
    )

    log_dir: str = Field(
        default="logs",
        description="Directory for rotating log files"
    )

    log_to_file: bool = Field(
        default=False,
        description="Whether to write rotating log files in addition to the console"
    )

    @field_validator('transport')
    @classmethod
    def validate_transport(cls, v):
        v = v.lower()
        if v not in VALID_TRANSPORTS:
            raise ValueError(f"transport must be one of {', '.join(VALID_TRANSPORTS)}")
        return v

    @field_validator('port')
    @classmethod
    def validate_port(cls, v):
        if v <= 0 or v > 65535:
            raise ValueError("port must be between 1 and 65535")
        return v

    @field_validator('applescript_timeout_seconds')
    @classmethod
    def validate_applescript_timeout(cls, v):
        if v <= 0:
            raise ValueError("applescript_timeout_seconds must be positive")
        if v > 300:
            raise ValueError("applescript_timeout_seconds cannot exceed 300 seconds")
        return v

    @field_validator('query_default_rows', 'query_max_rows', 'query_display_rows')
    @classmethod
    def validate_row_limits(cls, v):
        if v <= 0:
            raise ValueError("row limits must be positive")
        if v > 10000:
            raise ValueError("row limits cannot exceed 10000")
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        v = v.upper()
        if v not in VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(VALID_LOG_LEVELS)}")
        return v

    def resolved_imessage_db_path(self) -> Path:
        """Return the chat.db path, falling back to the macOS default."""
        from imessage_tools.imessage.utils import get_default_database_path

        return Path(self.imessage_db_path or get_default_database_path()).expanduser()

    def resolved_contacts_db_path(self) -> Path:
        """Return the AddressBook path, falling back to the macOS default."""
        from imessage_tools.contacts.utils import get_default_database_path

        return Path(self.contacts_db_path or get_default_database_path()).expanduser()


def load_config() -> ServerConfig:
    """
    Load configuration from environment variables or defaults.

    Environment variables supported:
    - IMESSAGE_DB_PATH: Path to chat.db
    - CONTACTS_DB_PATH: Path to the AddressBook database
    - MCP_TRANSPORT: 'http' or 'stdio'
    - MCP_HOST: HTTP host
    - MCP_PORT: HTTP port
    - APPLESCRIPT_TIMEOUT: osascript timeout in seconds
    - QUERY_MAX_ROWS: Upper bound for raw SQL query results
    - LOG_LEVEL: Root log level
    - LOG_DIR: Directory for log files
    - LOG_TO_FILE: Write rotating log files (true/false)

    Returns:
        ServerConfig: Configured settings instance
    """
    config_data = {}

    if imessage_db_path := os.getenv('IMESSAGE_DB_PATH'):
        config_data['imessage_db_path'] = imessage_db_path

    if contacts_db_path := os.getenv('CONTACTS_DB_PATH'):
        config_data['contacts_db_path'] = contacts_db_path

    if transport := os.getenv('MCP_TRANSPORT'):
        config_data['transport'] = transport

    if host := os.getenv('MCP_HOST'):
        config_data['host'] = host

    if port := os.getenv('MCP_PORT'):
        config_data['port'] = int(port)

    if timeout := os.getenv('APPLESCRIPT_TIMEOUT'):
        config_data['applescript_timeout_seconds'] = int(timeout)

    if max_rows := os.getenv('QUERY_MAX_ROWS'):
        config_data['query_max_rows'] = int(max_rows)

    if log_level := os.getenv('LOG_LEVEL'):
        config_data['log_level'] = log_level

    if log_dir := os.getenv('LOG_DIR'):
        config_data['log_dir'] = log_dir

    if log_to_file := os.getenv('LOG_TO_FILE'):
        config_data['log_to_file'] = log_to_file.lower() == 'true'

    return ServerConfig(**config_data)
