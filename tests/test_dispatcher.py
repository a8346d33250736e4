"""
Unit tests for the Dispatcher.

Covers lookup and validation short-circuits, timeout precedence, failure
normalization, cancellation and concurrent dispatch.
"""

import asyncio

import pytest

from swissknife_mcp.backends.base import FunctionBackend
from swissknife_mcp.dispatcher import Dispatcher
from swissknife_mcp.models.errors import FailureCategory
from swissknife_mcp.models.tools import BackendOperation, InvocationRequest
from swissknife_mcp.tool_registry import ToolRegistry

from .conftest import CrashArguments, RecordingBackend


class TestDispatchShortCircuits:
    """Requests that must never reach a backend."""

    @pytest.mark.asyncio
    async def test_unknown_tool(self, dispatcher, backend):
        result = await dispatcher.dispatch(InvocationRequest(tool_name="nope", arguments={}))

        assert not result.success
        assert result.category == FailureCategory.UNKNOWN_TOOL
        assert result.tool_name == "nope"
        assert backend.calls == []

    @pytest.mark.asyncio
    async def test_missing_required_argument(self, dispatcher, backend):
        result = await dispatcher.dispatch(InvocationRequest(tool_name="echo", arguments={}))

        assert not result.success
        assert result.category == FailureCategory.INVALID_ARGUMENTS
        assert "text" in result.error.message
        assert backend.calls == []

    @pytest.mark.asyncio
    async def test_constraint_violation_is_named(self, dispatcher, backend):
        result = await dispatcher.dispatch(InvocationRequest(tool_name="sleep", arguments={"seconds": -1}))

        assert result.category == FailureCategory.INVALID_ARGUMENTS
        assert "seconds" in result.error.message
        assert "greater than or equal to 0" in result.error.message
        assert backend.calls == []

    @pytest.mark.asyncio
    async def test_unexpected_argument_is_rejected(self, dispatcher, backend):
        result = await dispatcher.dispatch(
            InvocationRequest(tool_name="echo", arguments={"text": "hi", "txet": "typo"})
        )

        assert result.category == FailureCategory.INVALID_ARGUMENTS
        assert "txet" in result.error.message
        assert backend.calls == []


class TestDispatchSuccess:

    @pytest.mark.asyncio
    async def test_echo(self, dispatcher, backend):
        request = InvocationRequest(tool_name="echo", arguments={"text": "hi"})
        result = await dispatcher.dispatch(request)

        assert result.success
        assert result.data == {"text": "hi"}
        assert result.request_id == request.id
        assert result.error is None
        assert result.execution_time is not None
        assert backend.calls == [("echo", {"text": "hi"})]

    @pytest.mark.asyncio
    async def test_backend_receives_validated_arguments(self, dispatcher, backend):
        await dispatcher.dispatch(InvocationRequest(tool_name="sleep", arguments={"seconds": "0"}))

        assert backend.calls == [("sleep", {"seconds": 0.0})]


class TestFailureNormalization:
    """Backend errors collapse into the failure taxonomy."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind, category", [
        ("auth", FailureCategory.BACKEND_REJECTED),
        ("rate_limit", FailureCategory.BACKEND_REJECTED),
        ("invalid_input", FailureCategory.BACKEND_REJECTED),
        ("transient_network", FailureCategory.BACKEND_UNAVAILABLE),
        ("unknown", FailureCategory.BACKEND_UNAVAILABLE),
        ("timeout", FailureCategory.TIMEOUT),
    ])
    async def test_backend_error_kinds(self, dispatcher, kind, category):
        result = await dispatcher.dispatch(InvocationRequest(tool_name="fail", arguments={"kind": kind}))

        assert not result.success
        assert result.category == category
        assert result.error.detail == "raw vendor message"
        assert result.error.backend == "test"

    @pytest.mark.asyncio
    async def test_rate_limit_keeps_retry_after(self, dispatcher):
        result = await dispatcher.dispatch(
            InvocationRequest(tool_name="fail", arguments={"kind": "rate_limit", "retry_after": 12})
        )

        assert result.category == FailureCategory.BACKEND_REJECTED
        assert result.error.retry_after == 12

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_backend_unavailable(self, dispatcher, backend):
        result = await dispatcher.dispatch(InvocationRequest(tool_name="crash", arguments={}))

        assert result.category == FailureCategory.BACKEND_UNAVAILABLE
        assert "backend exploded" in result.error.detail
        assert backend.checked_out == 0

    @pytest.mark.asyncio
    async def test_failure_payload(self, dispatcher):
        result = await dispatcher.dispatch(InvocationRequest(tool_name="fail", arguments={"kind": "auth"}))

        assert result.error.to_payload() == {
            "category": "backend_rejected",
            "message": "vendor refused the request",
            "tool_name": "fail",
            "backend": "test",
            "detail": "raw vendor message",
        }


class TestTimeouts:

    @pytest.mark.asyncio
    async def test_timeout_releases_connection(self, dispatcher, backend):
        result = await dispatcher.dispatch(
            InvocationRequest(tool_name="sleep", arguments={"seconds": 5}),
            timeout=0.05,
        )

        assert not result.success
        assert result.category == FailureCategory.TIMEOUT
        assert backend.checked_out == 0
        assert backend.cancelled == 1

    @pytest.mark.asyncio
    async def test_request_timeout_is_used(self, dispatcher):
        result = await dispatcher.dispatch(
            InvocationRequest(tool_name="sleep", arguments={"seconds": 5}, timeout=0.05)
        )

        assert result.category == FailureCategory.TIMEOUT

    @pytest.mark.asyncio
    async def test_backend_timeout_is_used(self):
        registry = ToolRegistry([RecordingBackend(timeout=0.05)])
        registry.freeze()
        dispatcher = Dispatcher(registry, default_timeout=10)

        result = await dispatcher.dispatch(InvocationRequest(tool_name="sleep", arguments={"seconds": 5}))

        assert result.category == FailureCategory.TIMEOUT

    def test_timeout_precedence(self, dispatcher, registry):
        descriptor = registry.lookup("sleep")
        request = InvocationRequest(tool_name="sleep", timeout=2.0)

        assert dispatcher.resolve_timeout(descriptor, request, timeout=0.5) == 0.5
        assert dispatcher.resolve_timeout(descriptor, request) == 2.0
        assert dispatcher.resolve_timeout(descriptor, InvocationRequest(tool_name="sleep")) == 1.0


class TestCancellation:

    @pytest.mark.asyncio
    async def test_cancellation_propagates_and_releases(self, dispatcher, backend):
        task = asyncio.create_task(
            dispatcher.dispatch(InvocationRequest(tool_name="sleep", arguments={"seconds": 5}))
        )
        while backend.checked_out == 0:
            await asyncio.sleep(0)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert backend.checked_out == 0
        assert backend.cancelled == 1

    @pytest.mark.asyncio
    async def test_cancellation_raised_by_backend_is_a_failure(self):
        async def abort():
            raise asyncio.CancelledError()

        backend = FunctionBackend("jobs")
        backend.add_operation(
            BackendOperation(name="abort", description="Abort", input_model=CrashArguments),
            abort,
        )
        registry = ToolRegistry([backend])
        registry.freeze()

        result = await Dispatcher(registry).dispatch(InvocationRequest(tool_name="abort", arguments={}))

        assert result.category == FailureCategory.CANCELLED
        assert result.error.backend == "jobs"


class TestConcurrency:

    @pytest.mark.asyncio
    async def test_backend_calls_are_bounded(self, registry, backend):
        dispatcher = Dispatcher(registry, max_concurrent_calls=2)

        results = await dispatcher.dispatch_many([
            InvocationRequest(tool_name="sleep", arguments={"seconds": 0.05})
            for _ in range(6)
        ])

        assert all(result.success for result in results)
        assert backend.max_checked_out == 2

    @pytest.mark.asyncio
    async def test_hundred_concurrent_requests_over_ten_tools(self):
        backends = [RecordingBackend(name=f"svc{i}", prefix=f"svc{i}_") for i in range(10)]
        registry = ToolRegistry(backends)
        registry.freeze()
        dispatcher = Dispatcher(registry)

        requests = [
            InvocationRequest(tool_name=f"svc{i % 10}_echo", arguments={"text": f"message-{i}"})
            for i in range(100)
        ]
        results = await dispatcher.dispatch_many(requests)

        assert len(results) == 100
        for request, result in zip(requests, results):
            assert result.success
            assert result.request_id == request.id
            assert result.data == {"text": request.arguments["text"]}
        assert all(len(b.calls) == 10 for b in backends)

    @pytest.mark.asyncio
    async def test_slow_call_does_not_block_fast_calls(self, dispatcher):
        slow = asyncio.create_task(
            dispatcher.dispatch(InvocationRequest(tool_name="sleep", arguments={"seconds": 0.5}))
        )

        fast = await asyncio.wait_for(
            dispatcher.dispatch(InvocationRequest(tool_name="echo", arguments={"text": "quick"})),
            timeout=0.25,
        )

        assert fast.success
        assert not slow.done()
        assert (await slow).success

    @pytest.mark.asyncio
    async def test_dispatch_many_empty(self, dispatcher):
        assert await dispatcher.dispatch_many([]) == []
