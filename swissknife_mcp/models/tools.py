"""
Tool-related models for the swissknife MCP server.
"""

import uuid
from typing import Any, Dict, Iterable, List, Optional, Type
from pydantic import Field

from .base import BaseFrameworkModel, TimestampedModel, ToolArguments
from .errors import FailureCategory, ToolFailure


class BackendBinding(BaseFrameworkModel):
    """
    Reference from a tool to one operation of a configured backend client.
    """
    backend: str = Field(..., description="Name of the registered backend client")
    operation: str = Field(..., description="Operation name passed to the backend's invoke()")

    class Config:
        frozen = True


class ToolDescriptor(BaseFrameworkModel):
    """
    Immutable description of a tool exposed to callers.
    """
    name: str = Field(..., min_length=1, description="Tool name (unique within a registry)")
    description: str = Field("", description="Tool description for LLM understanding")
    input_model: Type[ToolArguments] = Field(..., description="Pydantic model validating tool arguments")
    binding: BackendBinding = Field(..., description="Backend operation the tool is bound to")
    timeout: Optional[float] = Field(None, gt=0, description="Per-tool timeout in seconds")

    class Config:
        frozen = True

    @property
    def input_schema(self) -> Dict[str, Any]:
        """JSON schema of the accepted arguments."""
        schema = self.input_model.model_json_schema()
        schema.setdefault("type", "object")
        schema.setdefault("properties", {})
        return schema

    def to_mcp_format(self) -> Dict[str, Any]:
        """Convert to the MCP tools/list entry format."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }

    def __str__(self) -> str:
        return f"Tool({self.name}) -> {self.binding.backend}.{self.binding.operation}"


class InvocationRequest(BaseFrameworkModel):
    """
    A single call of a tool by name.
    """
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Unique request ID")
    tool_name: str = Field(..., description="Name of the tool to call")
    arguments: Dict[str, Any] = Field(default_factory=dict, description="Arguments for the tool call")
    timeout: Optional[float] = Field(None, gt=0, description="Caller-supplied timeout in seconds")


class InvocationResult(TimestampedModel):
    """
    Result from a tool invocation: either a payload or a failure.
    """
    request_id: str = Field(..., description="ID of the request this result is for")
    tool_name: str = Field(..., description="Name of the tool that was called")
    success: bool = Field(..., description="Whether the invocation was successful")
    data: Optional[Any] = Field(None, description="Structured result payload")
    error: Optional[ToolFailure] = Field(None, description="Failure if the invocation failed")
    execution_time: Optional[float] = Field(None, description="Time taken by the backend call (seconds)")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Additional metadata")

    @property
    def category(self) -> Optional[str]:
        """Failure category, or None for successful results."""
        return self.error.category if self.error else None

    @classmethod
    def success_result(
        cls,
        request_id: str,
        tool_name: str,
        data: Any = None,
        execution_time: Optional[float] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> "InvocationResult":
        """Create a successful invocation result."""
        return cls(
            request_id=request_id,
            tool_name=tool_name,
            success=True,
            data=data,
            execution_time=execution_time,
            metadata=metadata or {}
        )

    @classmethod
    def error_result(
        cls,
        request_id: str,
        tool_name: str,
        error: ToolFailure,
        execution_time: Optional[float] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> "InvocationResult":
        """Create a failed invocation result."""
        return cls(
            request_id=request_id,
            tool_name=tool_name,
            success=False,
            error=error,
            execution_time=execution_time,
            metadata=metadata or {}
        )

    @classmethod
    def failure(
        cls,
        request_id: str,
        tool_name: str,
        category: FailureCategory,
        message: str,
        execution_time: Optional[float] = None,
        **failure_fields: Any
    ) -> "InvocationResult":
        """Shortcut building the ToolFailure in place."""
        return cls.error_result(
            request_id=request_id,
            tool_name=tool_name,
            error=ToolFailure(
                category=category,
                message=message,
                tool_name=tool_name,
                **failure_fields
            ),
            execution_time=execution_time,
        )


class BackendOperation(BaseFrameworkModel):
    """
    An operation a backend client declares; becomes one tool at startup.
    """
    name: str = Field(..., min_length=1, description="Operation (and tool) name")
    description: str = Field("", description="Operation description")
    input_model: Type[ToolArguments] = Field(..., description="Pydantic model for the operation's arguments")
    timeout: Optional[float] = Field(None, gt=0, description="Operation-specific timeout in seconds")

    def to_descriptor(self, backend_name: str) -> ToolDescriptor:
        """Build the tool descriptor binding this operation to its backend."""
        return ToolDescriptor(
            name=self.name,
            description=self.description,
            input_model=self.input_model,
            binding=BackendBinding(backend=backend_name, operation=self.name),
            timeout=self.timeout,
        )


def describe_tools(descriptors: Iterable[ToolDescriptor]) -> List[Dict[str, Any]]:
    """MCP-format entries for a sequence of descriptors."""
    return [descriptor.to_mcp_format() for descriptor in descriptors]
