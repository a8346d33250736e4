"""
MCP Tools adaptation layer.

This module contains components for exposing registry tools through FastMCP:
- adapter: Dispatcher-backed FastMCP tools
"""

from .adapter import DispatcherTool, register_tools

__all__ = [
    "DispatcherTool",
    "register_tools",
]
