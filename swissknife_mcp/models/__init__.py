"""
Pydantic models for the swissknife MCP server.
"""

from .base import BaseFrameworkModel, TimestampedModel, ToolArguments
from .config import BackendConfig, ServerConfig
from .errors import (
    BACKEND_ERROR_CATEGORIES,
    BackendError,
    BackendErrorKind,
    ConfigurationError,
    DuplicateBackend,
    DuplicateToolName,
    FailureCategory,
    MissingBackend,
    RegistryFrozen,
    SwissknifeMCPError,
    ToolFailure,
    ToolFailureException,
    ToolRegistrationError,
    UnknownTool,
    ValidationIssue,
)
from .tools import (
    BackendBinding,
    BackendOperation,
    InvocationRequest,
    InvocationResult,
    ToolDescriptor,
    describe_tools,
)

__all__ = [
    "BaseFrameworkModel",
    "TimestampedModel",
    "ToolArguments",
    # Configuration
    "BackendConfig",
    "ServerConfig",
    # Failures
    "BACKEND_ERROR_CATEGORIES",
    "BackendError",
    "BackendErrorKind",
    "ConfigurationError",
    "DuplicateBackend",
    "DuplicateToolName",
    "FailureCategory",
    "MissingBackend",
    "RegistryFrozen",
    "SwissknifeMCPError",
    "ToolFailure",
    "ToolFailureException",
    "ToolRegistrationError",
    "UnknownTool",
    "ValidationIssue",
    # Tools
    "BackendBinding",
    "BackendOperation",
    "InvocationRequest",
    "InvocationResult",
    "ToolDescriptor",
    "describe_tools",
]
