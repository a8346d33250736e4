#!/usr/bin/env python3
"""
Command line entry point for the swissknife MCP server.
"""

import argparse
import sys
from typing import List, Optional

from ...models.config import ServerConfig
from ...models.errors import SwissknifeMCPError
from ...utils.constants import DEFAULT_MAX_CONCURRENT_CALLS
from ...utils.logger import configure_logging, mcp_logger
from .server import TRANSPORT_MODES, SwissknifeMCPServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="swissknife-mcp",
        description="Serve backend API clients as MCP tools",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="JSON configuration file (default: read credentials from the environment)"
    )
    parser.add_argument(
        "--backends",
        type=str,
        default="all",
        help="Comma-separated backends to activate, or 'all'"
    )
    parser.add_argument(
        "--mode",
        choices=TRANSPORT_MODES,
        default="stdio",
        help="Transport to serve on"
    )
    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Bind address for http and sse"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=3000,
        help="Bind port for http and sse"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="Default backend call timeout in seconds"
    )
    parser.add_argument(
        "--max-concurrent",
        type=int,
        help=f"Concurrent tool calls per connection (default: {DEFAULT_MAX_CONCURRENT_CALLS})"
    )
    parser.add_argument(
        "--name",
        type=str,
        help="Server name reported to clients"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging"
    )
    return parser


def load_config(args: argparse.Namespace) -> ServerConfig:
    """
    Build the server configuration from the parsed arguments.

    Raises:
        ConfigurationError: For unreadable files, invalid values or unknown backends
    """
    config = ServerConfig.from_file(args.config) if args.config else ServerConfig.from_env()

    overrides = {}
    if args.name:
        overrides["server_name"] = args.name
    if args.timeout is not None:
        overrides["default_timeout"] = args.timeout
    if args.max_concurrent is not None:
        overrides["max_concurrent_calls"] = args.max_concurrent
    if overrides:
        config = ServerConfig(**{**config.model_dump(), **overrides})

    names = [name.strip() for name in args.backends.split(",") if name.strip()]
    return config.select(names)


def main(argv: Optional[List[str]] = None) -> int:
    """Run the server; returns the process exit code."""
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    try:
        config = load_config(args)
        server = SwissknifeMCPServer(config)
    except (SwissknifeMCPError, ValueError) as e:
        # Startup errors: nothing has been served yet
        mcp_logger.error(f"Cannot start server: {e}")
        return 1

    server.run(mode=args.mode, host=args.host, port=args.port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
