"""MCP server for imessage_tools"""

from .app import create_server, run_server

__all__ = ['create_server', 'run_server']
