"""
Tests for the stdio transport, run against a real server process.

The server is started with FastMCP's stdio transport and driven with raw
newline-delimited JSON-RPC, the way an MCP client talks to it.
"""

import asyncio
import json
import os
import sys
import textwrap
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent

SERVER_SCRIPT = textwrap.dedent('''
    import sys
    from pathlib import Path

    from pydantic import Field

    from swissknife_mcp import create_server
    from swissknife_mcp.backends import FunctionBackend
    from swissknife_mcp.models.base import ToolArguments
    from swissknife_mcp.models.tools import BackendOperation

    MARKER = Path(sys.argv[1])


    class TouchArguments(ToolArguments):
        pass


    class EchoArguments(ToolArguments):
        text: str = Field(..., min_length=1)


    async def touch():
        MARKER.write_text("called")
        return {"touched": True}


    async def echo(text):
        return {"text": text}


    backend = FunctionBackend("stdio")
    backend.add_operation(BackendOperation(name="touch", description="Create the marker file", input_model=TouchArguments), touch)
    backend.add_operation(BackendOperation(name="echo", description="Echo text", input_model=EchoArguments), echo)
    create_server(backends=[backend]).run("stdio")
''')

RESPONSE_TIMEOUT = 30


class StdioSession:
    """A server subprocess and the raw JSON-RPC stream to it."""

    def __init__(self, tmp_path: Path):
        self.script = tmp_path / "server.py"
        self.marker = tmp_path / "touched"
        self.process = None

    async def __aenter__(self):
        self.script.write_text(SERVER_SCRIPT)
        env = dict(os.environ, PYTHONPATH=str(ROOT))
        self.process = await asyncio.create_subprocess_exec(
            sys.executable, str(self.script), str(self.marker),
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
            env=env,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.process.stdin and not self.process.stdin.is_closing():
            self.process.stdin.close()
        try:
            await asyncio.wait_for(self.process.wait(), timeout=RESPONSE_TIMEOUT)
        except asyncio.TimeoutError:
            self.process.kill()
            await self.process.wait()

    async def send(self, message) -> None:
        line = message if isinstance(message, str) else json.dumps(message)
        self.process.stdin.write(line.encode() + b"\n")
        await self.process.stdin.drain()

    async def receive(self, request_id):
        """Read until the response to ``request_id``, skipping notifications."""
        while True:
            line = await asyncio.wait_for(self.process.stdout.readline(), timeout=RESPONSE_TIMEOUT)
            assert line, "server closed its output"
            message = json.loads(line)
            if message.get("id") == request_id:
                return message

    async def request(self, request_id, method, params=None):
        message = {"jsonrpc": "2.0", "id": request_id, "method": method}
        if params is not None:
            message["params"] = params
        await self.send(message)
        return await self.receive(request_id)

    async def initialize(self):
        response = await self.request(1, "initialize", {
            "protocolVersion": "2025-06-18",
            "capabilities": {},
            "clientInfo": {"name": "stdio-test", "version": "0"},
        })
        await self.send({"jsonrpc": "2.0", "method": "notifications/initialized"})
        return response


@pytest.mark.integration
@pytest.mark.asyncio
class TestStdioServer:

    async def test_initialize_and_list_tools(self, tmp_path):
        async with StdioSession(tmp_path) as session:
            initialized = await session.initialize()
            listed = await session.request(2, "tools/list")

        assert initialized["result"]["serverInfo"]["name"] == "swissknife-mcp"
        names = sorted(tool["name"] for tool in listed["result"]["tools"])
        assert names == ["echo", "touch"]

    async def test_tool_call(self, tmp_path):
        async with StdioSession(tmp_path) as session:
            await session.initialize()
            response = await session.request(2, "tools/call", {"name": "echo", "arguments": {"text": "hi"}})

        result = response["result"]
        assert result["isError"] is False
        assert result["structuredContent"] == {"text": "hi"}

    async def test_invalid_arguments_are_an_error_result(self, tmp_path):
        async with StdioSession(tmp_path) as session:
            await session.initialize()
            response = await session.request(2, "tools/call", {"name": "echo", "arguments": {"txt": "typo"}})

        result = response["result"]
        assert result["isError"] is True
        assert result["structuredContent"]["error"]["category"] == "invalid_arguments"

    async def test_tool_call_notification_is_not_executed(self, tmp_path):
        async with StdioSession(tmp_path) as session:
            await session.initialize()
            await session.send({"jsonrpc": "2.0", "method": "tools/call", "params": {"name": "touch", "arguments": {}}})
            pong = await session.request(2, "ping")
            echoed = await session.request(3, "tools/call", {"name": "echo", "arguments": {"text": "after"}})

            assert not session.marker.exists()

        assert "result" in pong
        assert echoed["result"]["structuredContent"] == {"text": "after"}

    async def test_server_survives_unparseable_line(self, tmp_path):
        async with StdioSession(tmp_path) as session:
            await session.initialize()
            await session.send("{not json")
            pong = await session.request(2, "ping")

        assert "result" in pong

    async def test_end_of_input_stops_server(self, tmp_path):
        async with StdioSession(tmp_path) as session:
            await session.initialize()
            session.process.stdin.close()
            returncode = await asyncio.wait_for(session.process.wait(), timeout=RESPONSE_TIMEOUT)

        assert returncode == 0
