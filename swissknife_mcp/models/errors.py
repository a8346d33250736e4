"""
Error models and exceptions for the swissknife MCP server.

Per-request failures are values (``ToolFailure`` inside an
``InvocationResult``); registration and configuration problems are
exceptions raised before the server accepts any request.
"""

from enum import Enum
from typing import Any, Dict, Optional
from pydantic import Field

from .base import BaseFrameworkModel, TimestampedModel


class FailureCategory(str, Enum):
    """Normalized failure taxonomy that callers branch on."""

    UNKNOWN_TOOL = "unknown_tool"
    DUPLICATE_TOOL_NAME = "duplicate_tool_name"
    INVALID_ARGUMENTS = "invalid_arguments"
    MALFORMED_REQUEST = "malformed_request"
    BACKEND_UNAVAILABLE = "backend_unavailable"
    BACKEND_REJECTED = "backend_rejected"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"


class BackendErrorKind(str, Enum):
    """Error classes a backend client reports through ``BackendError``."""

    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    INVALID_INPUT = "invalid_input"
    TRANSIENT_NETWORK = "transient_network"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


# How backend error kinds collapse into the caller-facing taxonomy
BACKEND_ERROR_CATEGORIES: Dict[BackendErrorKind, FailureCategory] = {
    BackendErrorKind.AUTH: FailureCategory.BACKEND_REJECTED,
    BackendErrorKind.RATE_LIMIT: FailureCategory.BACKEND_REJECTED,
    BackendErrorKind.INVALID_INPUT: FailureCategory.BACKEND_REJECTED,
    BackendErrorKind.TRANSIENT_NETWORK: FailureCategory.BACKEND_UNAVAILABLE,
    BackendErrorKind.TIMEOUT: FailureCategory.TIMEOUT,
    BackendErrorKind.UNKNOWN: FailureCategory.BACKEND_UNAVAILABLE,
}


class ToolFailure(TimestampedModel):
    """
    Structured description of a failed tool invocation.
    """
    category: FailureCategory = Field(..., description="Normalized failure category")
    message: str = Field(..., description="Human-readable error message")
    tool_name: Optional[str] = Field(None, description="Tool the failure belongs to")
    backend: Optional[str] = Field(None, description="Backend that produced the failure")
    detail: Optional[str] = Field(None, description="Backend-specific diagnostic text")
    retry_after: Optional[float] = Field(None, description="Seconds to wait before retry (rate limits)")

    def to_payload(self) -> Dict[str, Any]:
        """Wire form of the failure, without bookkeeping timestamps."""
        return self.model_dump(
            mode="json",
            exclude={"created_at"},
            exclude_none=True,
        )

    def __str__(self) -> str:
        return f"ToolFailure({self.category}): {self.message}"


class ValidationIssue(BaseFrameworkModel):
    """
    A single violated constraint from argument validation.
    """
    field: str = Field(..., description="Dotted path of the offending argument")
    message: str = Field(..., description="Validation error message")

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class SwissknifeMCPError(Exception):
    """Base class for all server exceptions."""


class ToolRegistrationError(SwissknifeMCPError):
    """Raised when the registry cannot accept a tool or backend."""


class DuplicateToolName(ToolRegistrationError):
    """Raised when a tool name is registered twice."""

    def __init__(self, tool_name: str):
        self.tool_name = tool_name
        super().__init__(f"Tool '{tool_name}' is already registered")


class DuplicateBackend(ToolRegistrationError):
    """Raised when two backends share a name."""

    def __init__(self, backend_name: str):
        self.backend_name = backend_name
        super().__init__(f"Backend '{backend_name}' is already registered")


class MissingBackend(ToolRegistrationError):
    """Raised when a tool is bound to a backend that was never registered."""

    def __init__(self, tool_name: str, backend_name: str):
        self.tool_name = tool_name
        self.backend_name = backend_name
        super().__init__(
            f"Tool '{tool_name}' is bound to backend '{backend_name}', which is not registered"
        )


class RegistryFrozen(ToolRegistrationError):
    """Raised when the registry is modified after startup."""


class ConfigurationError(SwissknifeMCPError):
    """Raised for invalid server or backend configuration."""


class ToolFailureException(SwissknifeMCPError):
    """Exception class carrying a structured tool failure."""

    def __init__(self, failure: ToolFailure):
        self.failure = failure
        super().__init__(str(failure))


class UnknownTool(ToolFailureException, LookupError):
    """Raised by registry lookups for names that were never registered."""

    def __init__(self, tool_name: str):
        self.tool_name = tool_name
        super().__init__(ToolFailure(
            category=FailureCategory.UNKNOWN_TOOL,
            message=f"Tool not found: {tool_name}",
            tool_name=tool_name,
        ))


class BackendError(SwissknifeMCPError):
    """
    Error raised by backend clients.

    Vendor-specific detail stays in ``detail``; ``kind`` is what the
    dispatcher uses to pick a failure category.
    """

    def __init__(
        self,
        kind: BackendErrorKind,
        message: str,
        detail: Optional[str] = None,
        status_code: Optional[int] = None,
        retry_after: Optional[float] = None,
    ):
        self.kind = BackendErrorKind(kind)
        self.message = message
        self.detail = detail
        self.status_code = status_code
        self.retry_after = retry_after
        super().__init__(message)

    @property
    def category(self) -> FailureCategory:
        return BACKEND_ERROR_CATEGORIES[self.kind]

    def __str__(self) -> str:
        return f"BackendError({self.kind.value}): {self.message}"
