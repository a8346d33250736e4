"""
FastMCP adapter for registry tools.

Exposes every descriptor of a frozen registry as a FastMCP tool whose
execution goes through the dispatcher. Failures become error results
whose structured content carries the failure category, so clients on
stdio, http and sse see the same payloads as in-process callers.
"""

import json
import logging
from typing import Any, Dict, List

from fastmcp import FastMCP
from fastmcp.tools import Tool, ToolResult
from pydantic import PrivateAttr

from ...dispatcher import Dispatcher
from ...models.errors import ToolFailure
from ...models.tools import InvocationRequest, InvocationResult, ToolDescriptor
from ...tool_registry import ToolRegistry

logger = logging.getLogger("swissknife-mcp-tool-adapter")


def result_text(result: InvocationResult) -> str:
    """Text content for a result: the failure message, or the data as text."""
    if not result.success:
        return result.error.message
    if isinstance(result.data, str):
        return result.data
    return json.dumps(result.data, ensure_ascii=False, default=str)


def failure_content(failure: ToolFailure) -> Dict[str, Any]:
    return {"error": failure.to_payload()}


class DispatcherTool(Tool):
    """A FastMCP tool backed by a registry descriptor."""

    _dispatcher: Any = PrivateAttr(default=None)

    @classmethod
    def from_descriptor(cls, descriptor: ToolDescriptor, dispatcher: Dispatcher) -> "DispatcherTool":
        """
        Create the FastMCP tool for a descriptor.

        Args:
            descriptor: Registered tool descriptor
            dispatcher: Dispatcher executing the calls

        Returns:
            Tool ready for ``FastMCP.add_tool``
        """
        tool = cls(
            name=descriptor.name,
            description=descriptor.description,
            parameters=descriptor.input_schema,
            tags={descriptor.binding.backend},
        )
        tool._dispatcher = dispatcher
        return tool

    async def run(self, arguments: Dict[str, Any]) -> ToolResult:
        result = await self._dispatcher.dispatch(
            InvocationRequest(tool_name=self.name, arguments=arguments or {})
        )

        if not result.success:
            return ToolResult(
                content=result_text(result),
                structured_content=failure_content(result.error),
                is_error=True,
            )

        structured = result.data if isinstance(result.data, dict) else None
        return ToolResult(content=result_text(result), structured_content=structured)


def register_tools(mcp: FastMCP, registry: ToolRegistry, dispatcher: Dispatcher) -> List[DispatcherTool]:
    """
    Add one FastMCP tool per registered descriptor.

    Returns:
        The tools that were added
    """
    tools = [DispatcherTool.from_descriptor(descriptor, dispatcher) for descriptor in registry.list_tools()]
    for tool in tools:
        mcp.add_tool(tool)
        logger.debug(f"Registered tool with FastMCP: {tool.name}")

    logger.info(f"Registered {len(tools)} tools with FastMCP server")
    return tools
