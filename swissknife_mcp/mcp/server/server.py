"""
Core swissknife MCP server.

Builds the registry from configuration, freezes it, and serves it through
a FastMCP instance (stdio, http or sse) whose tools delegate to the
dispatcher.
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, Optional

from fastmcp import FastMCP

from ...backends import create_backend
from ...backends.base import BackendClient
from ...dispatcher import Dispatcher
from ...models.config import ServerConfig
from ...tool_registry import ToolRegistry
from ...utils.logger import mcp_logger
from ..tools.adapter import register_tools

logger = logging.getLogger("swissknife-mcp-server")

TRANSPORT_MODES = ("stdio", "http", "sse")


class SwissknifeMCPServer:
    """
    Tool server composed from configuration.

    All registration happens in the constructor; registration errors
    (duplicate tool or backend names, tools bound to missing backends) are
    raised from there, before any transport is opened.
    """

    def __init__(self, config: Optional[ServerConfig] = None, backends: Optional[Iterable[BackendClient]] = None):
        """
        Initialize the server.

        Args:
            config: Server configuration (defaults to an empty configuration)
            backends: Backend clients to serve; built from ``config`` when omitted
        """
        self.config = config or ServerConfig()
        self.registry = ToolRegistry()

        if backends is None:
            backends = [create_backend(backend_config) for backend_config in self.config.enabled_backends()]

        for backend in backends:
            descriptors = self.registry.register_backend(backend)
            mcp_logger.backend(backend.name, [descriptor.name for descriptor in descriptors])

        self.registry.freeze()
        mcp_logger.available_tools(list(self.registry.list_tools()))
        self.dispatcher = Dispatcher(
            self.registry,
            default_timeout=self.config.default_timeout,
            max_concurrent_calls=self.config.max_concurrent_calls,
        )
        self._mcp: Optional[FastMCP] = None

        logger.info(f"Initialized {self.config.server_name} with {len(self.registry)} tools")

    @property
    def server_name(self) -> str:
        return self.config.server_name

    @property
    def mcp(self) -> FastMCP:
        """FastMCP instance exposing the registry (built on first use)."""
        if self._mcp is None:
            self._mcp = FastMCP(
                self.config.server_name,
                instructions=self.config.instructions,
                version=self.config.version,
            )
            register_tools(self._mcp, self.registry, self.dispatcher)
        return self._mcp

    async def serve_stdio(self) -> None:
        """Serve one client over stdin/stdout until the client closes its end."""
        mcp_logger.mcp_server("Serving on stdio")
        await self.mcp.run_stdio_async(show_banner=False)

    async def serve_http(self, mode: str = "http", host: str = "127.0.0.1", port: int = 3000) -> None:
        """Serve over FastMCP's HTTP (streamable) or SSE transport."""
        mcp_logger.mcp_server(f"Serving on {mode}://{host}:{port}")
        await self.mcp.run_http_async(transport=mode, host=host, port=port, show_banner=False)

    async def run_async(self, mode: str = "stdio", host: str = "127.0.0.1", port: int = 3000) -> None:
        """
        Open backend connections, serve, and release them on exit.

        Args:
            mode: Transport, one of "stdio", "http" or "sse"
            host: Bind address for http and sse
            port: Bind port for http and sse
        """
        if mode not in TRANSPORT_MODES:
            raise ValueError(f"Unknown transport mode: {mode}")

        async with self:
            if mode == "stdio":
                await self.serve_stdio()
            else:
                await self.serve_http(mode, host, port)

    def run(self, mode: str = "stdio", host: str = "127.0.0.1", port: int = 3000) -> None:
        """
        Run the server until the transport closes.

        Args:
            mode: Transport protocol to use (default: "stdio")
            host: Bind address for http and sse
            port: Bind port for http and sse
        """
        logger.info(f"Starting {self.server_name} with {mode} transport...")

        try:
            asyncio.run(self.run_async(mode, host, port))
        except KeyboardInterrupt:
            logger.info("Server stopped by user")
        except Exception as e:
            logger.error(f"Server error: {e}")
            raise

    def get_server_info(self) -> Dict[str, Any]:
        """
        Get server information.

        Returns:
            Dictionary with server details
        """
        return {
            "server_name": self.config.server_name,
            "version": self.config.version,
            "tool_count": len(self.registry),
            "tool_names": self.registry.list_tool_names(),
            "backends": [backend.name for backend in self.registry.list_backends()],
        }

    async def __aenter__(self):
        await self.registry.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.registry.close()


def create_server(
    config: Optional[ServerConfig] = None,
    backends: Optional[Iterable[BackendClient]] = None,
) -> SwissknifeMCPServer:
    """
    Create a new server instance.

    Args:
        config: Server configuration
        backends: Explicit backend clients, overriding the configured ones

    Returns:
        Server instance with a frozen registry
    """
    return SwissknifeMCPServer(config, backends=backends)
