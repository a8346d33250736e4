"""
Centralized constants for the swissknife MCP server.

This module contains all shared constants used across the server to avoid duplication
and ensure consistency.
"""

from typing import Dict, Optional, Set, Tuple

# =============================================================================
# SERVER IDENTITY
# =============================================================================

DEFAULT_SERVER_NAME = "swissknife-mcp"
SERVER_VERSION = "0.1.0"

# =============================================================================
# EXECUTION LIMITS
# =============================================================================

# Seconds a backend call may take when nothing more specific is configured
DEFAULT_TIMEOUT = 30.0

# Backend calls running at once per dispatcher
DEFAULT_MAX_CONCURRENT_CALLS = 64

# web_fetch keeps at most this many characters of a response body
MAX_FETCH_CHARS = 10000

# web_fetch refuses bodies larger than this many bytes
MAX_FETCH_BYTES = 10 * 1024 * 1024

# Seconds allowed for resolving a web_fetch host
DNS_TIMEOUT = 5.0

# Backend error detail kept in failures
MAX_DETAIL_CHARS = 2000

# =============================================================================
# BACKENDS
# =============================================================================

# Recognized backends and the environment variable carrying their credential.
# None means the backend needs no credential.
BACKEND_ENV_VARS: Dict[str, Optional[str]] = {
    "tavily": "TAVILY_API_KEY",
    "web": None,
    "github": "GITHUB_TOKEN",
    "slack": "SLACK_BOT_TOKEN",
    "sendgrid": "SENDGRID_API_KEY",
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}

KNOWN_BACKENDS: Set[str] = set(BACKEND_ENV_VARS.keys())

USER_AGENT = "Mozilla/5.0 (compatible; SwissknifeMCP/1.0)"

# HTTP statuses that mean the vendor rejected the request itself
INVALID_INPUT_STATUSES: Set[int] = {400, 404, 409, 422}
AUTH_STATUSES: Set[int] = {401, 403}
RATE_LIMIT_STATUSES: Set[int] = {429}
TRANSIENT_STATUSES: Set[int] = {502, 503, 504}

# Hosts web_fetch never contacts (cloud metadata endpoints and local names)
BLOCKED_FETCH_HOSTS: Set[str] = {
    "localhost",
    "metadata.google.internal",
    "metadata.goog",
}
BLOCKED_FETCH_HOST_SUFFIXES: Tuple[str, ...] = (
    ".localhost",
    ".metadata.google.internal",
    ".metadata.goog",
)
