"""
Shared pytest fixtures for the swissknife MCP tests.

Provides:
- An in-process recording backend (echo, sleep, fail, crash operations)
- Frozen registries and dispatchers built on it
"""

import asyncio
from typing import Any, Dict, List, Optional, Tuple

import pytest
from pydantic import Field

from swissknife_mcp.backends.base import BackendClient
from swissknife_mcp.dispatcher import Dispatcher
from swissknife_mcp.models.base import ToolArguments
from swissknife_mcp.models.errors import BackendError, BackendErrorKind
from swissknife_mcp.models.tools import BackendOperation
from swissknife_mcp.tool_registry import ToolRegistry


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom settings"""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")


# ============================================================================
# Test backend
# ============================================================================

class EchoArguments(ToolArguments):
    text: str = Field(..., min_length=1, description="Text to echo back")


class SleepArguments(ToolArguments):
    seconds: float = Field(..., ge=0, description="How long to sleep")


class FailArguments(ToolArguments):
    kind: BackendErrorKind = Field(..., description="Backend error kind to raise")
    retry_after: Optional[float] = Field(None, description="Retry-After to report")


class CrashArguments(ToolArguments):
    pass


class RecordingBackend(BackendClient):
    """
    In-process backend that records every call.

    ``checked_out`` counts calls currently holding a (simulated) pooled
    connection; it must return to zero on every exit path.
    """

    OPERATIONS = {
        "echo": EchoArguments,
        "sleep": SleepArguments,
        "fail": FailArguments,
        "crash": CrashArguments,
    }

    def __init__(self, name: str = "test", prefix: str = "", timeout: Optional[float] = None):
        self._name = name
        self.prefix = prefix
        self.timeout = timeout
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.checked_out = 0
        self.max_checked_out = 0
        self.cancelled = 0
        self.initialized = False
        self.closed = False

    @property
    def name(self) -> str:
        return self._name

    def operations(self) -> List[BackendOperation]:
        return [
            BackendOperation(name=f"{self.prefix}{op}", description=f"Test {op} operation", input_model=model)
            for op, model in self.OPERATIONS.items()
        ]

    async def invoke(self, operation: str, arguments: Dict[str, Any]) -> Any:
        self.calls.append((operation, arguments))
        op = operation[len(self.prefix):]

        self.checked_out += 1
        self.max_checked_out = max(self.max_checked_out, self.checked_out)
        try:
            if op == "echo":
                await asyncio.sleep(0)
                return {"text": arguments["text"]}
            if op == "sleep":
                await asyncio.sleep(arguments["seconds"])
                return {"slept": arguments["seconds"]}
            if op == "fail":
                raise BackendError(
                    arguments["kind"],
                    "vendor refused the request",
                    detail="raw vendor message",
                    retry_after=arguments.get("retry_after"),
                )
            raise RuntimeError("backend exploded")
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        finally:
            self.checked_out -= 1

    async def initialize(self) -> None:
        self.initialized = True

    async def close(self) -> None:
        self.closed = True


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def backend():
    """Recording backend named 'test' with tools echo, sleep, fail, crash."""
    return RecordingBackend()


@pytest.fixture
def registry(backend):
    """Frozen registry serving the recording backend."""
    registry = ToolRegistry([backend])
    registry.freeze()
    return registry


@pytest.fixture
def dispatcher(registry):
    """Dispatcher with a short default timeout."""
    return Dispatcher(registry, default_timeout=1.0)
