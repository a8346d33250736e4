"""
Swissknife MCP

A tool server for AI agents: configured backend API clients (web search,
GitHub, Slack, email, LLM providers) are exposed as named, schema-described
MCP tools, dispatched concurrently over stdio, HTTP or SSE.
"""

from .backends import BackendClient, FunctionBackend, HTTPBackendClient, create_backend
from .dispatcher import Dispatcher
from .models.config import BackendConfig, ServerConfig
from .models.errors import (
    BackendError,
    BackendErrorKind,
    ConfigurationError,
    FailureCategory,
    ToolFailure,
    ToolRegistrationError,
)
from .models.tools import InvocationRequest, InvocationResult, ToolDescriptor
from .tool_registry import ToolRegistry
from .mcp.host import MCPHost
from .mcp.server.server import SwissknifeMCPServer, create_server

__version__ = "0.1.0"
__all__ = [
    # Core components
    "ToolRegistry",
    "Dispatcher",
    "SwissknifeMCPServer",
    "create_server",
    "MCPHost",

    # Backends
    "BackendClient",
    "FunctionBackend",
    "HTTPBackendClient",
    "create_backend",

    # Models
    "BackendConfig",
    "ServerConfig",
    "ToolDescriptor",
    "InvocationRequest",
    "InvocationResult",
    "ToolFailure",
    "FailureCategory",
    "BackendError",
    "BackendErrorKind",
    "ConfigurationError",
    "ToolRegistrationError",
]
