"""
Backend clients for the swissknife MCP server.
"""

from typing import Dict, Optional, Type

import httpx

from ..models.config import BackendConfig
from ..models.errors import ConfigurationError
from .base import BackendClient, FunctionBackend, HTTPBackendClient
from .communication import SendGridBackend, SlackBackend
from .devtools import GitHubBackend
from .llm import AnthropicBackend, OpenAIBackend
from .search import TavilyBackend, WebFetchBackend

# Backend name -> client class
BACKEND_CLASSES: Dict[str, Type[HTTPBackendClient]] = {
    cls.backend_name: cls
    for cls in (
        TavilyBackend,
        WebFetchBackend,
        GitHubBackend,
        SlackBackend,
        SendGridBackend,
        OpenAIBackend,
        AnthropicBackend,
    )
}


def create_backend(config: BackendConfig, transport: Optional[httpx.AsyncBaseTransport] = None) -> HTTPBackendClient:
    """
    Create the backend client for a configuration entry.

    Raises:
        ConfigurationError: If no client exists for the configured name
    """
    try:
        backend_class = BACKEND_CLASSES[config.name]
    except KeyError:
        raise ConfigurationError(f"No backend client for '{config.name}'") from None
    return backend_class(config, transport=transport)


__all__ = [
    "BACKEND_CLASSES",
    "create_backend",
    "BackendClient",
    "FunctionBackend",
    "HTTPBackendClient",
    "TavilyBackend",
    "WebFetchBackend",
    "GitHubBackend",
    "SlackBackend",
    "SendGridBackend",
    "OpenAIBackend",
    "AnthropicBackend",
]
