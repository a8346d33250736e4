"""
MCP (Model Context Protocol) functionality for the swissknife server.

This module contains all MCP-related components organized with clear separation of concerns:
- server: Server composition and command line entry point
- tools: FastMCP adaptation of registry tools
- host: In-process MCP client
"""

from .host import MCPHost
from .tools.adapter import DispatcherTool, register_tools

__all__ = [
    "DispatcherTool",
    "MCPHost",
    "register_tools",
]
