"""
Basic usage of the swissknife MCP server.

Builds a server from an in-process backend plus the credential-free web
fetch backend, then calls the tools through the in-memory MCP host.
"""

import asyncio

from pydantic import Field

from swissknife_mcp import FunctionBackend, MCPHost, ServerConfig, create_backend, create_server
from swissknife_mcp.models.base import ToolArguments
from swissknife_mcp.models.config import BackendConfig
from swissknife_mcp.models.tools import BackendOperation


class WordCountArguments(ToolArguments):
    text: str = Field(..., description="Text to count words in")


async def word_count(text: str):
    words = text.split()
    return {"words": len(words), "unique": len(set(words))}


def build_backends():
    strings = FunctionBackend("strings", "Local text helpers", timeout=2.0)
    strings.add_operation(
        BackendOperation(name="word_count", description="Count words in a text", input_model=WordCountArguments),
        word_count,
    )
    return [strings, create_backend(BackendConfig(name="web"))]


async def basic_example():
    print("🔧 Swissknife MCP Basic Example")
    print("=" * 50)

    server = create_server(ServerConfig(server_name="example"), backends=build_backends())
    print(f"📦 Server info: {server.get_server_info()}")

    async with MCPHost(server) as host:
        print(f"🔗 Tools available: {', '.join(host.get_tool_names())}")

        result = await host.call_tool("word_count", {"text": "the quick brown fox jumps over the lazy dog"})
        print(f"✅ word_count: {result.data}")

        # Misspelled argument: rejected before the backend is called
        result = await host.call_tool("word_count", {"txt": "oops"})
        print(f"❌ {result.category}: {result.error.message}")

        result = await host.call_tool("nonexistent_tool", {})
        print(f"❌ {result.category}: {result.error.message}")

        result = await host.call_tool("web_fetch", {"url": "https://example.com"})
        if result.success:
            print(f"🌐 web_fetch: HTTP {result.data['status']}, {len(result.data['content'])} characters")
        else:
            print(f"⚠️  web_fetch failed ({result.category}): {result.error.message}")


if __name__ == "__main__":
    asyncio.run(basic_example())
