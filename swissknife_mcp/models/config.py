"""
Configuration models for the swissknife MCP server.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union
from pydantic import Field, ValidationError, validator

from .base import BaseFrameworkModel
from .errors import ConfigurationError
from ..utils.constants import (
    BACKEND_ENV_VARS,
    DEFAULT_MAX_CONCURRENT_CALLS,
    DEFAULT_SERVER_NAME,
    DEFAULT_TIMEOUT,
    KNOWN_BACKENDS,
    SERVER_VERSION,
)


class BackendConfig(BaseFrameworkModel):
    """
    Settings for one backend client.

    Credentials are treated as opaque values; where they come from is up
    to the caller building the configuration.
    """
    name: str = Field(..., description="Backend name (one of the recognized backends)")
    api_key: Optional[str] = Field(None, description="API key or token for the vendor API")
    base_url: Optional[str] = Field(None, description="Override of the vendor API base URL")
    timeout: Optional[float] = Field(None, gt=0, description="Default timeout for this backend's tools")
    max_connections: int = Field(10, ge=1, description="Size of the backend's HTTP connection pool")
    max_retries: int = Field(2, ge=0, description="Retries performed by the vendor SDK, if any")
    options: Dict[str, Any] = Field(default_factory=dict, description="Backend-specific options")
    enabled: bool = Field(True, description="Whether the backend is activated")

    @validator("name")
    def validate_name(cls, v):
        """Only recognized backends can be configured."""
        if v not in KNOWN_BACKENDS:
            raise ValueError(f"Unknown backend '{v}'. Known backends: {', '.join(sorted(KNOWN_BACKENDS))}")
        return v

    def __repr__(self) -> str:
        # Keep credentials out of logs
        key = "***" if self.api_key else None
        return f"BackendConfig(name={self.name!r}, api_key={key!r}, enabled={self.enabled})"

    __str__ = __repr__


class ServerConfig(BaseFrameworkModel):
    """
    Startup configuration: server identity, limits and activated backends.
    """
    server_name: str = Field(DEFAULT_SERVER_NAME, description="Name reported to MCP clients")
    version: str = Field(SERVER_VERSION, description="Version reported to MCP clients")
    instructions: Optional[str] = Field(None, description="Usage instructions returned on initialize")
    default_timeout: float = Field(DEFAULT_TIMEOUT, gt=0, description="Default backend call timeout (seconds)")
    max_concurrent_calls: int = Field(DEFAULT_MAX_CONCURRENT_CALLS, ge=1, description="Backend calls running at once")
    backends: Dict[str, BackendConfig] = Field(default_factory=dict, description="Backend configurations by name")

    @validator("backends", pre=True)
    def validate_backends(cls, v):
        """Accept a list of backend entries as well as a mapping, keyed by name."""
        if isinstance(v, list):
            keyed = {}
            for entry in v:
                if isinstance(entry, BackendConfig):
                    keyed[entry.name] = entry
                elif isinstance(entry, dict) and isinstance(entry.get("name"), str):
                    keyed[entry["name"]] = entry
                else:
                    raise ValueError("Backend entries must be objects with a string 'name'")
            v = keyed
        if isinstance(v, dict):
            normalized = {}
            for name, entry in v.items():
                if isinstance(entry, dict):
                    entry = {"name": name, **entry}
                normalized[name] = entry
            return normalized
        return v

    def enabled_backends(self) -> List[BackendConfig]:
        """Backends that should be activated, in configuration order."""
        return [config for config in self.backends.values() if config.enabled]

    def select(self, names: Iterable[str]) -> "ServerConfig":
        """
        Restrict the configuration to the given backend names.

        ``"all"`` keeps every configured backend. Selecting a backend with
        no configuration entry activates it with defaults, which only works
        for backends that need no credentials.
        """
        names = list(names)
        if not names or "all" in names:
            return self

        unknown = [name for name in names if name not in KNOWN_BACKENDS]
        if unknown:
            raise ConfigurationError(f"Unknown backend(s): {', '.join(unknown)}")

        selected = {
            name: self.backends.get(name) or BackendConfig(name=name)
            for name in names
        }
        return self.model_copy(update={"backends": selected})

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> "ServerConfig":
        """
        Build a configuration from environment variables.

        Each backend with credentials in the environment is activated; the
        ``web`` backend needs none and is always activated.
        """
        environ = os.environ if environ is None else environ
        backends: Dict[str, BackendConfig] = {}

        for name, env_var in BACKEND_ENV_VARS.items():
            if env_var is None:
                backends[name] = BackendConfig(name=name)
                continue
            api_key = environ.get(env_var)
            if api_key:
                base_url = environ.get(f"{name.upper()}_BASE_URL")
                backends[name] = BackendConfig(name=name, api_key=api_key, base_url=base_url)

        sender = environ.get("SENDGRID_FROM_EMAIL")
        if "sendgrid" in backends and sender:
            backends["sendgrid"].options["from_email"] = sender

        timeout = environ.get("SWISSKNIFE_MCP_TIMEOUT")
        if timeout and "default_timeout" not in overrides:
            overrides["default_timeout"] = float(timeout)

        try:
            return cls(backends=backends, **overrides)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration from environment: {e}") from e

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ServerConfig":
        """Load a configuration from a JSON file."""
        path = Path(path)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot read configuration file {path}: {e}") from e

        if not isinstance(raw, dict):
            raise ConfigurationError(f"Configuration file {path} must contain a JSON object")

        try:
            return cls(**raw)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration in {path}: {e}") from e
