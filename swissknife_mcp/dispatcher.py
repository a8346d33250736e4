"""
Request dispatcher for the swissknife MCP server.

Turns an invocation request into exactly one backend call (or none, when
the tool is unknown or the arguments are invalid) and normalizes whatever
happens into an InvocationResult.
"""

import asyncio
import logging
import time
from typing import List, Optional

from pydantic import ValidationError

from .models.errors import BackendError, FailureCategory, UnknownTool, ValidationIssue
from .models.tools import InvocationRequest, InvocationResult, ToolDescriptor
from .tool_registry import ToolRegistry
from .utils.constants import DEFAULT_MAX_CONCURRENT_CALLS, DEFAULT_TIMEOUT, MAX_DETAIL_CHARS
from .utils.logger import mcp_logger

logger = logging.getLogger("swissknife-mcp-dispatcher")


def validation_issues(error: ValidationError) -> List[ValidationIssue]:
    """Flatten a pydantic ValidationError into field/message pairs."""
    return [
        ValidationIssue(
            field=".".join(str(part) for part in issue["loc"]) or "<arguments>",
            message=issue["msg"],
        )
        for issue in error.errors()
    ]


class Dispatcher:
    """
    Routes invocation requests to backend operations.

    The dispatcher holds no per-request state; any number of dispatch()
    calls may run concurrently against the same (frozen) registry.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        default_timeout: float = DEFAULT_TIMEOUT,
        max_concurrent_calls: int = DEFAULT_MAX_CONCURRENT_CALLS,
    ):
        """
        Initialize the dispatcher.

        Args:
            registry: Tool registry to resolve tool names against
            default_timeout: Timeout used when neither the call, the tool
                nor its backend sets one
            max_concurrent_calls: Upper bound on backend calls running at once
        """
        self.registry = registry
        self.default_timeout = default_timeout
        self.max_concurrent_calls = max_concurrent_calls
        self.execution_semaphore = asyncio.Semaphore(max_concurrent_calls)

    def resolve_timeout(
        self,
        descriptor: ToolDescriptor,
        request: InvocationRequest,
        timeout: Optional[float] = None,
    ) -> float:
        """Most specific timeout wins: call, request, tool, backend, default."""
        backend = self.registry.backend_for(descriptor)
        for candidate in (timeout, request.timeout, descriptor.timeout, backend.timeout):
            if candidate is not None:
                return candidate
        return self.default_timeout

    async def dispatch(self, request: InvocationRequest, timeout: Optional[float] = None) -> InvocationResult:
        """
        Execute one invocation request.

        Args:
            request: The request to execute
            timeout: Optional override of the resolved timeout

        Returns:
            Successful or failed invocation result; failures are never raised

        Raises:
            asyncio.CancelledError: If the calling task is cancelled
        """
        try:
            descriptor = self.registry.lookup(request.tool_name)
        except UnknownTool as e:
            logger.debug(f"Unknown tool requested: {request.tool_name}")
            return InvocationResult.error_result(
                request_id=request.id,
                tool_name=request.tool_name,
                error=e.failure,
            )

        try:
            arguments = descriptor.input_model.model_validate(request.arguments)
        except ValidationError as e:
            issues = validation_issues(e)
            return InvocationResult.failure(
                request_id=request.id,
                tool_name=request.tool_name,
                category=FailureCategory.INVALID_ARGUMENTS,
                message=f"Invalid arguments for {request.tool_name}: " + "; ".join(str(issue) for issue in issues),
                backend=descriptor.binding.backend,
            )

        backend = self.registry.backend_for(descriptor)
        execution_timeout = self.resolve_timeout(descriptor, request, timeout)
        mcp_logger.tool_call(request.tool_name, request.arguments)

        start_time = time.perf_counter()
        try:
            async with self.execution_semaphore:
                async with asyncio.timeout(execution_timeout):
                    data = await backend.invoke(
                        descriptor.binding.operation,
                        arguments.model_dump(mode="json"),
                    )

        except asyncio.TimeoutError:
            execution_time = time.perf_counter() - start_time
            result = InvocationResult.failure(
                request_id=request.id,
                tool_name=request.tool_name,
                category=FailureCategory.TIMEOUT,
                message=f"Tool {request.tool_name} timed out after {execution_timeout} seconds",
                execution_time=execution_time,
                backend=backend.name,
            )

        except asyncio.CancelledError:
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                raise
            # Raised by the backend itself, not by cancellation of this call
            execution_time = time.perf_counter() - start_time
            result = InvocationResult.failure(
                request_id=request.id,
                tool_name=request.tool_name,
                category=FailureCategory.CANCELLED,
                message=f"Backend {backend.name} cancelled the call to {request.tool_name}",
                execution_time=execution_time,
                backend=backend.name,
            )

        except BackendError as e:
            execution_time = time.perf_counter() - start_time
            result = InvocationResult.failure(
                request_id=request.id,
                tool_name=request.tool_name,
                category=e.category,
                message=e.message,
                execution_time=execution_time,
                backend=backend.name,
                detail=e.detail,
                retry_after=e.retry_after,
            )

        except Exception as e:
            # Anything a backend did not classify counts as an outage
            logger.exception(f"Unexpected error from backend {backend.name}")
            execution_time = time.perf_counter() - start_time
            result = InvocationResult.failure(
                request_id=request.id,
                tool_name=request.tool_name,
                category=FailureCategory.BACKEND_UNAVAILABLE,
                message=f"Backend {backend.name} failed: {type(e).__name__}",
                execution_time=execution_time,
                backend=backend.name,
                detail=str(e)[:MAX_DETAIL_CHARS] or None,
            )

        else:
            execution_time = time.perf_counter() - start_time
            result = InvocationResult.success_result(
                request_id=request.id,
                tool_name=request.tool_name,
                data=data,
                execution_time=execution_time,
                metadata={"backend": backend.name},
            )

        mcp_logger.tool_result(
            request.tool_name,
            result.success,
            detail=None if result.success else result.error.message,
            execution_time=execution_time,
        )
        return result

    async def dispatch_many(self, requests: List[InvocationRequest]) -> List[InvocationResult]:
        """
        Execute several requests concurrently.

        Returns:
            Results in the order of the requests
        """
        if not requests:
            return []
        return list(await asyncio.gather(*(self.dispatch(request) for request in requests)))
