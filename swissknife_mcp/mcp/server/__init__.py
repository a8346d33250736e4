"""
MCP Server components.

This module contains the server-side MCP implementation with separated concerns:
- server: Registry composition and transport selection
- run_server: Command line entry point
"""

from .server import SwissknifeMCPServer, create_server

__all__ = [
    "SwissknifeMCPServer",
    "create_server",
]
