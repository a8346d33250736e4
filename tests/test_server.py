"""
Tests for server composition and the command line entry point.
"""

import json

import pytest

from swissknife_mcp import SwissknifeMCPServer, create_server
from swissknife_mcp.backends import WebFetchBackend
from swissknife_mcp.mcp.server.run_server import build_parser, load_config, main
from swissknife_mcp.models.config import ServerConfig
from swissknife_mcp.models.errors import DuplicateBackend, DuplicateToolName

from .conftest import RecordingBackend


class TestComposition:

    def test_explicit_backends(self):
        server = create_server(ServerConfig(server_name="custom"), backends=[RecordingBackend()])

        info = server.get_server_info()
        assert info["server_name"] == "custom"
        assert info["tool_count"] == 4
        assert info["backends"] == ["test"]
        assert server.registry.is_frozen

    def test_backends_from_config(self):
        server = SwissknifeMCPServer(ServerConfig(backends={"web": {}}))

        assert server.registry.list_tool_names() == ["web_fetch"]
        assert isinstance(server.registry.get_backend("web"), WebFetchBackend)

    def test_disabled_backends_are_skipped(self):
        server = SwissknifeMCPServer(ServerConfig(backends={"web": {"enabled": False}}))

        assert len(server.registry) == 0

    def test_duplicate_backend_fails_at_startup(self):
        with pytest.raises(DuplicateBackend):
            SwissknifeMCPServer(backends=[RecordingBackend(), RecordingBackend()])

    def test_duplicate_tool_name_fails_at_startup(self):
        with pytest.raises(DuplicateToolName):
            SwissknifeMCPServer(backends=[RecordingBackend("first"), RecordingBackend("second")])

    def test_dispatcher_uses_configured_timeout(self):
        server = create_server(ServerConfig(default_timeout=4.0), backends=[RecordingBackend()])

        assert server.dispatcher.default_timeout == 4.0

    @pytest.mark.asyncio
    async def test_run_async_rejects_unknown_mode(self):
        server = create_server(backends=[RecordingBackend()])

        with pytest.raises(ValueError):
            await server.run_async(mode="carrier-pigeon")

    @pytest.mark.asyncio
    async def test_context_manager_manages_backends(self):
        backend = RecordingBackend()
        server = create_server(backends=[backend])

        async with server:
            assert backend.initialized
        assert backend.closed

    def test_dispatcher_uses_configured_concurrency(self):
        server = create_server(ServerConfig(max_concurrent_calls=2), backends=[RecordingBackend()])

        assert server.dispatcher.max_concurrent_calls == 2

    def test_fastmcp_exposes_registry(self):
        server = create_server(backends=[RecordingBackend()])

        assert server.mcp is server.mcp
        assert server.mcp.name == server.server_name


class TestCommandLine:

    def test_parser_defaults(self):
        args = build_parser().parse_args([])

        assert args.mode == "stdio"
        assert args.backends == "all"
        assert args.port == 3000

    def test_load_config_with_overrides(self, monkeypatch):
        monkeypatch.delenv("SWISSKNIFE_MCP_TIMEOUT", raising=False)
        args = build_parser().parse_args(["--backends", "web", "--timeout", "9", "--max-concurrent", "3", "--name", "cli"])

        config = load_config(args)

        assert list(config.backends) == ["web"]
        assert config.default_timeout == 9.0
        assert config.max_concurrent_calls == 3
        assert config.server_name == "cli"

    def test_load_config_from_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"server_name": "from-file", "backends": {"web": {}}}))

        config = load_config(build_parser().parse_args(["--config", str(path)]))

        assert config.server_name == "from-file"
        assert list(config.backends) == ["web"]

    def test_unknown_backend_exits_with_error(self):
        assert main(["--backends", "nope"]) == 1

    def test_missing_config_file_exits_with_error(self, tmp_path):
        assert main(["--config", str(tmp_path / "missing.json")]) == 1

    def test_malformed_backend_entry_exits_with_error(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"backends": [{"timeout": 2}]}))

        assert main(["--config", str(path)]) == 1

    def test_invalid_override_exits_with_error(self):
        assert main(["--backends", "web", "--max-concurrent", "0"]) == 1

    def test_mode_is_validated_by_parser(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--mode", "carrier-pigeon"])
