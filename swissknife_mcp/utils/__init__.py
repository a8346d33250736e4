"""
Utility modules for the swissknife MCP server.
"""

from .logger import configure_logging, set_log_level, mcp_logger

__all__ = ['configure_logging', 'set_log_level', 'mcp_logger']
