"""
Web search and fetch backends.
"""

import asyncio
import ipaddress
import socket
from typing import Any, Dict, List

import httpx
from pydantic import Field

from ..models.base import ToolArguments
from ..models.errors import BackendError, BackendErrorKind
from ..models.tools import BackendOperation
from ..utils.constants import (
    BLOCKED_FETCH_HOST_SUFFIXES,
    BLOCKED_FETCH_HOSTS,
    DNS_TIMEOUT,
    MAX_FETCH_BYTES,
    MAX_FETCH_CHARS,
)
from .base import HTTPBackendClient


class TavilySearchArguments(ToolArguments):
    """Arguments for tavily_search."""
    query: str = Field(..., min_length=1, description="The search query")
    max_results: int = Field(5, ge=1, le=20, description="Maximum number of results to return")
    include_answer: bool = Field(True, description="Include a generated answer")
    search_depth: str = Field("basic", pattern="^(basic|advanced)$", description="Search depth: basic or advanced")


class WebFetchArguments(ToolArguments):
    """Arguments for web_fetch."""
    url: str = Field(..., min_length=1, description="The URL to fetch")


class TavilyBackend(HTTPBackendClient):
    """Tavily AI-powered web search."""

    backend_name = "tavily"
    default_base_url = "https://api.tavily.com"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.operation_map = {
            "tavily_search": self.search,
        }

    @property
    def description(self) -> str:
        return "Web search through the Tavily API"

    def operations(self) -> List[BackendOperation]:
        return [
            BackendOperation(
                name="tavily_search",
                description="Search the web using Tavily AI-powered search engine",
                input_model=TavilySearchArguments,
            ),
        ]

    async def search(
        self,
        query: str,
        max_results: int = 5,
        include_answer: bool = True,
        search_depth: str = "basic",
    ) -> Dict[str, Any]:
        payload = {
            "api_key": self._require_api_key(),
            "query": query,
            "max_results": max_results,
            "include_answer": include_answer,
            "search_depth": search_depth,
        }
        response = await self._request("POST", "/search", json=payload)

        return {
            "query": response.get("query", query),
            "answer": response.get("answer"),
            "results": [
                {
                    "title": item.get("title"),
                    "url": item.get("url"),
                    "snippet": item.get("content"),
                    "score": item.get("score"),
                }
                for item in response.get("results", [])
            ],
        }


def is_restricted_address(address: str) -> bool:
    """True for loopback, private, link-local and other non-public addresses."""
    try:
        ip = ipaddress.ip_address(address)
    except ValueError:
        return False
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped
    return not ip.is_global or ip.is_multicast or ip.is_reserved or ip.is_unspecified


def is_blocked_host(host: str) -> bool:
    host = host.lower().rstrip(".")
    return host in BLOCKED_FETCH_HOSTS or host.endswith(BLOCKED_FETCH_HOST_SUFFIXES)


class WebFetchBackend(HTTPBackendClient):
    """
    Plain HTTP GET of arbitrary URLs; needs no credentials.

    Hosts that are, or resolve to, loopback, private or link-local
    addresses are refused unless the ``allow_private`` option is set.
    Redirects are not followed; a 3xx is returned with its ``location``.
    Bodies larger than ``max_bytes`` are refused.
    """

    backend_name = "web"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        options = self.config.options
        self.max_chars: int = int(options.get("max_chars", MAX_FETCH_CHARS))
        self.max_bytes: int = int(options.get("max_bytes", MAX_FETCH_BYTES))
        self.allow_private: bool = bool(options.get("allow_private", False))
        self.operation_map = {
            "web_fetch": self.fetch,
        }

    @property
    def description(self) -> str:
        return "Fetch content from URLs"

    def operations(self) -> List[BackendOperation]:
        return [
            BackendOperation(
                name="web_fetch",
                description="Fetch content from a public http(s) URL",
                input_model=WebFetchArguments,
            ),
        ]

    async def resolve(self, host: str, port: int) -> List[str]:
        """Addresses a host name resolves to."""
        loop = asyncio.get_running_loop()
        try:
            async with asyncio.timeout(DNS_TIMEOUT):
                infos = await loop.getaddrinfo(host, port, type=socket.SOCK_STREAM)
        except asyncio.TimeoutError as e:
            raise BackendError(BackendErrorKind.TIMEOUT, f"Resolving {host} timed out") from e
        except socket.gaierror as e:
            raise BackendError(
                BackendErrorKind.TRANSIENT_NETWORK,
                f"Cannot resolve {host}",
                detail=str(e),
            ) from e
        return [info[4][0] for info in infos]

    async def check_url(self, url: str) -> httpx.URL:
        """Parse a URL and refuse the ones pointing at internal hosts."""
        try:
            parsed = httpx.URL(url)
        except httpx.InvalidURL as e:
            raise BackendError(BackendErrorKind.INVALID_INPUT, f"Invalid URL: {url}", detail=str(e)) from e

        if parsed.scheme not in ("http", "https"):
            raise BackendError(
                BackendErrorKind.INVALID_INPUT,
                f"Only http(s) URLs can be fetched: {url}",
            )
        if not parsed.host:
            raise BackendError(BackendErrorKind.INVALID_INPUT, f"URL has no host: {url}")
        if self.allow_private:
            return parsed

        if is_blocked_host(parsed.host) or is_restricted_address(parsed.host):
            raise BackendError(
                BackendErrorKind.INVALID_INPUT,
                f"Fetching internal address {parsed.host} is not allowed",
            )

        port = parsed.port or (443 if parsed.scheme == "https" else 80)
        for address in await self.resolve(parsed.host, port):
            if is_restricted_address(address):
                raise BackendError(
                    BackendErrorKind.INVALID_INPUT,
                    f"{parsed.host} resolves to internal address {address}",
                )
        return parsed

    def _too_large(self, url: str) -> BackendError:
        return BackendError(
            BackendErrorKind.INVALID_INPUT,
            f"Response from {url} exceeds {self.max_bytes} bytes",
        )

    async def fetch(self, url: str) -> Dict[str, Any]:
        """
        Fetch a URL.

        The remote status is reported as data: a 404 page is a successful
        fetch of a 404 page. Only transport failures and refused targets
        are errors.
        """
        parsed = await self.check_url(url)
        client = self._get_client()

        try:
            async with client.stream("GET", parsed, follow_redirects=False) as response:
                declared = response.headers.get("content-length", "")
                if declared.isdigit() and int(declared) > self.max_bytes:
                    raise self._too_large(url)

                body = bytearray()
                async for chunk in response.aiter_bytes():
                    body.extend(chunk)
                    if len(body) > self.max_bytes:
                        raise self._too_large(url)
        except (httpx.TransportError, httpx.InvalidURL) as e:
            raise self._transport_error(e) from e

        text = bytes(body).decode(response.encoding or "utf-8", errors="replace")
        truncated = len(text) > self.max_chars
        result = {
            "url": str(response.url),
            "status": response.status_code,
            "content_type": response.headers.get("content-type"),
            "content": text[:self.max_chars] if truncated else text,
            "truncated": truncated,
        }
        if response.is_redirect:
            result["location"] = response.headers.get("location")
        return result
