"""
In-process MCP host.

Connects a FastMCP client to the server's FastMCP instance in memory, so
an application can embed the server and call its tools through the real
MCP request path without spawning a process.
"""

import json
import logging
import time
import uuid
from typing import Any, Dict, List, Optional

from fastmcp import Client
from fastmcp.exceptions import McpError

from ..models.errors import FailureCategory, ToolFailure
from ..models.tools import InvocationResult
from .server.server import SwissknifeMCPServer

logger = logging.getLogger("swissknife-mcp-host")


class MCPHost:
    """
    MCP client bound to an in-process server.

    Tool results come back as ``InvocationResult`` values, with the failure
    category recovered from the structured error payload.
    """

    def __init__(self, server: SwissknifeMCPServer):
        self.server = server
        self.client: Optional[Client] = None
        self.available_tools: List[Dict[str, Any]] = []
        self.is_connected = False

    async def connect(self) -> None:
        """Open the backend connections and the in-memory MCP session."""
        if self.is_connected:
            return

        await self.server.registry.initialize()
        self.client = Client(self.server.mcp)
        await self.client.__aenter__()

        tools = await self.client.list_tools()
        self.available_tools = [
            {
                "type": "function",
                "function": {
                    "name": tool.name,
                    "description": tool.description,
                    "parameters": tool.input_schema,
                },
            }
            for tool in tools
        ]
        self.is_connected = True
        logger.info(f"Connected to {self.server.server_name} with {len(self.available_tools)} tools")

    async def disconnect(self) -> None:
        """Close the session and release backend connections."""
        if self.client is not None:
            try:
                await self.client.__aexit__(None, None, None)
            finally:
                self.client = None
                self.is_connected = False
                self.available_tools = []
        await self.server.registry.close()

    def get_available_tools(self) -> List[Dict[str, Any]]:
        """Tools in OpenAI function-calling format."""
        return self.available_tools

    def get_tool_names(self) -> List[str]:
        return [tool["function"]["name"] for tool in self.available_tools]

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> InvocationResult:
        """
        Call a tool through the MCP session.

        Returns:
            Invocation result; tool failures are returned, not raised

        Raises:
            RuntimeError: If the host is not connected
        """
        if not self.is_connected or self.client is None:
            raise RuntimeError("MCP host is not connected")

        request_id = str(uuid.uuid4())
        if name not in self.get_tool_names():
            return InvocationResult.failure(
                request_id=request_id,
                tool_name=name,
                category=FailureCategory.UNKNOWN_TOOL,
                message=f"Tool not found: {name}",
            )
        if arguments is not None and not isinstance(arguments, dict):
            return InvocationResult.failure(
                request_id=request_id,
                tool_name=name,
                category=FailureCategory.MALFORMED_REQUEST,
                message=f"Arguments for {name} must be an object, got {type(arguments).__name__}",
            )

        start_time = time.perf_counter()
        try:
            result = await self.client.call_tool_mcp(name, arguments or {})
        except McpError as e:
            # Protocol-level rejection of the request itself
            return InvocationResult.failure(
                request_id=request_id,
                tool_name=name,
                category=FailureCategory.MALFORMED_REQUEST,
                message=e.error.message,
                execution_time=time.perf_counter() - start_time,
            )
        execution_time = time.perf_counter() - start_time

        text = "\n".join(block.text for block in result.content if getattr(block, "type", None) == "text")
        structured = result.structured_content

        if result.is_error:
            error = (structured or {}).get("error")
            if isinstance(error, dict):
                failure = ToolFailure(**error)
            else:
                # Errors raised by the MCP layer itself carry no structured payload
                failure = ToolFailure(
                    category=FailureCategory.BACKEND_UNAVAILABLE,
                    message=text or f"Tool {name} failed",
                    tool_name=name,
                )
            return InvocationResult.error_result(
                request_id=request_id,
                tool_name=name,
                error=failure,
                execution_time=execution_time,
            )

        if structured is not None:
            data = structured
        else:
            try:
                data = json.loads(text)
            except json.JSONDecodeError:
                data = text

        return InvocationResult.success_result(
            request_id=request_id,
            tool_name=name,
            data=data,
            execution_time=execution_time,
        )

    async def call_tool_text(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> str:
        """Call a tool and return its result (or failure message) as text."""
        result = await self.call_tool(name, arguments)
        if not result.success:
            return result.error.message
        return result.data if isinstance(result.data, str) else json.dumps(result.data, default=str)

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()
