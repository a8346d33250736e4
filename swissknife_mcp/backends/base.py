"""
Backend client interface.

Every vendor wrapper implements the same contract: it declares its
operations (each becomes a tool) and serves them through
``invoke(operation_name, arguments)``. Vendor-specific shapes stay inside
the backend; failures leave it as ``BackendError`` with a ``BackendErrorKind``.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from ..models.config import BackendConfig
from ..models.errors import BackendError, BackendErrorKind
from ..models.tools import BackendOperation
from ..utils.constants import (
    AUTH_STATUSES,
    DEFAULT_TIMEOUT,
    INVALID_INPUT_STATUSES,
    MAX_DETAIL_CHARS,
    RATE_LIMIT_STATUSES,
    TRANSIENT_STATUSES,
    USER_AGENT,
)

logger = logging.getLogger("swissknife-mcp-backend")

OperationHandler = Callable[..., Awaitable[Any]]


class BackendClient(ABC):
    """
    Abstract base class for all backend clients.
    """

    # Default timeout for this backend's tools; None defers to the dispatcher
    timeout: Optional[float] = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name (must be unique within a registry)."""
        pass

    @property
    def description(self) -> str:
        return ""

    @abstractmethod
    def operations(self) -> List[BackendOperation]:
        """Operations exposed as tools."""
        pass

    @abstractmethod
    async def invoke(self, operation: str, arguments: Dict[str, Any]) -> Any:
        """
        Run one operation.

        Args:
            operation: Operation name, as declared by operations()
            arguments: Validated arguments

        Returns:
            Structured, JSON-serializable result

        Raises:
            BackendError: Classified backend failure
        """
        pass

    async def initialize(self) -> None:
        """Acquire long-lived resources. Called once before serving."""

    async def close(self) -> None:
        """Release long-lived resources."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name='{self.name}')>"


class FunctionBackend(BackendClient):
    """
    Backend serving plain async callables, one per operation.

    Useful for tools implemented in-process rather than by a vendor API.
    """

    def __init__(self, name: str, description: str = "", timeout: Optional[float] = None):
        self._name = name
        self._description = description
        self.timeout = timeout
        self._operations: Dict[str, BackendOperation] = {}
        self.operation_map: Dict[str, OperationHandler] = {}

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    def add_operation(self, operation: BackendOperation, handler: OperationHandler) -> None:
        """Declare an operation and the coroutine function serving it."""
        if operation.name in self._operations:
            raise ValueError(f"Operation '{operation.name}' is already defined on backend '{self.name}'")
        self._operations[operation.name] = operation
        self.operation_map[operation.name] = handler

    def operations(self) -> List[BackendOperation]:
        return list(self._operations.values())

    async def invoke(self, operation: str, arguments: Dict[str, Any]) -> Any:
        handler = self.operation_map.get(operation)
        if handler is None:
            raise BackendError(
                BackendErrorKind.INVALID_INPUT,
                f"Unknown operation '{operation}' for backend {self.name}",
            )
        return await handler(**arguments)


def classify_status(status_code: int) -> Optional[BackendErrorKind]:
    """
    Map an HTTP status to a backend error kind.

    Returns:
        The error kind, or None for successful statuses
    """
    if status_code < 400:
        return None
    if status_code in AUTH_STATUSES:
        return BackendErrorKind.AUTH
    if status_code in RATE_LIMIT_STATUSES:
        return BackendErrorKind.RATE_LIMIT
    if status_code in INVALID_INPUT_STATUSES:
        return BackendErrorKind.INVALID_INPUT
    if status_code in TRANSIENT_STATUSES:
        return BackendErrorKind.TRANSIENT_NETWORK
    return BackendErrorKind.UNKNOWN


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Parse a Retry-After header given in seconds."""
    if not value:
        return None
    try:
        return max(float(value), 0.0)
    except ValueError:
        return None


def truncate(text: str, limit: int = MAX_DETAIL_CHARS) -> str:
    return text if len(text) <= limit else f"{text[:limit]}..."


class HTTPBackendClient(BackendClient):
    """
    Base class for backends talking to a vendor HTTP API.

    One pooled ``httpx.AsyncClient`` is shared by all concurrent calls of
    the backend; each request checks a connection out of the pool and
    returns it when the response has been read, on success, error or
    cancellation alike.
    """

    backend_name: str = ""
    default_base_url: str = ""

    def __init__(self, config: Optional[BackendConfig] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initialize the backend.

        Args:
            config: Backend configuration (credentials, endpoint, limits)
            transport: Optional httpx transport, used by tests
        """
        self.config = config or BackendConfig(name=self.backend_name)
        self.timeout = self.config.timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self.operation_map: Dict[str, OperationHandler] = {}

    @property
    def name(self) -> str:
        return self.backend_name

    @property
    def base_url(self) -> str:
        return (self.config.base_url or self.default_base_url).rstrip("/")

    @property
    def api_key(self) -> Optional[str]:
        return self.config.api_key

    def _headers(self) -> Dict[str, str]:
        """Headers sent with every request."""
        return {"User-Agent": USER_AGENT}

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the pooled HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._headers(),
                timeout=httpx.Timeout(self.config.timeout or DEFAULT_TIMEOUT),
                limits=httpx.Limits(
                    max_connections=self.config.max_connections,
                    max_keepalive_connections=self.config.max_connections,
                ),
                transport=self._transport,
            )
        return self._client

    async def initialize(self) -> None:
        self._get_client()

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def invoke(self, operation: str, arguments: Dict[str, Any]) -> Any:
        handler = self.operation_map.get(operation)
        if handler is None:
            raise BackendError(
                BackendErrorKind.INVALID_INPUT,
                f"Unknown operation '{operation}' for backend {self.name}",
            )
        return await handler(**arguments)

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """
        Send a request, translating transport failures into BackendError.

        The response is returned whatever its status.
        """
        client = self._get_client()
        try:
            return await client.request(method, url, **kwargs)
        except (httpx.TransportError, httpx.InvalidURL) as e:
            raise self._transport_error(e) from e

    def _transport_error(self, error: Exception) -> BackendError:
        """Classify an httpx transport failure."""
        if isinstance(error, httpx.TimeoutException):
            return BackendError(
                BackendErrorKind.TIMEOUT,
                f"{self.name} request timed out",
                detail=str(error) or type(error).__name__,
            )
        if isinstance(error, (httpx.InvalidURL, httpx.UnsupportedProtocol)):
            return BackendError(
                BackendErrorKind.INVALID_INPUT,
                f"Invalid URL for {self.name}: {error}",
                detail=str(error),
            )
        return BackendError(
            BackendErrorKind.TRANSIENT_NETWORK,
            f"Cannot reach {self.name}",
            detail=str(error) or type(error).__name__,
        )

    def _raise_for_status(self, response: httpx.Response) -> None:
        """Raise a classified BackendError for error statuses."""
        kind = classify_status(response.status_code)
        if kind is None:
            return

        raise BackendError(
            kind,
            f"{self.name} API error: HTTP {response.status_code}",
            detail=truncate(response.text),
            status_code=response.status_code,
            retry_after=parse_retry_after(response.headers.get("Retry-After")),
        )

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        """
        Send a request and decode its JSON body.

        Raises:
            BackendError: For transport failures, error statuses and
                undecodable bodies
        """
        response = await self._send(method, url, **kwargs)
        self._raise_for_status(response)

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise BackendError(
                BackendErrorKind.UNKNOWN,
                f"{self.name} returned a non-JSON response",
                detail=truncate(response.text),
                status_code=response.status_code,
            ) from e

    def _require_api_key(self) -> str:
        """The configured credential, or an auth failure."""
        if not self.api_key:
            raise BackendError(
                BackendErrorKind.AUTH,
                f"{self.name} is not configured with an API key",
            )
        return self.api_key
