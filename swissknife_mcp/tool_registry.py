"""
Tool registry for the swissknife MCP server.

The registry maps tool names to descriptors and backend names to the
clients serving them. It is filled once at startup, frozen, and only read
while requests are being handled, so lookups need no locking.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, ValuesView

from .backends.base import BackendClient
from .models.errors import (
    DuplicateBackend,
    DuplicateToolName,
    MissingBackend,
    RegistryFrozen,
    UnknownTool,
)
from .models.tools import ToolDescriptor

logger = logging.getLogger("swissknife-mcp-registry")


class ToolRegistry:
    """
    Authoritative mapping from tool name to backend operation and schema.
    """

    def __init__(self, backends: Optional[Iterable[BackendClient]] = None):
        self._tools: Dict[str, ToolDescriptor] = {}
        self._backends: Dict[str, BackendClient] = {}
        self._frozen = False
        self.is_initialized = False

        for backend in backends or []:
            self.register_backend(backend)

    # ------------------------------------------------------------------
    # Registration (startup only)
    # ------------------------------------------------------------------

    def add_backend(self, backend: BackendClient) -> None:
        """
        Register a backend client without registering its tools.

        Raises:
            DuplicateBackend: If a backend with the same name exists
            RegistryFrozen: If the registry has been frozen
        """
        self._check_not_frozen()
        if backend.name in self._backends:
            raise DuplicateBackend(backend.name)
        self._backends[backend.name] = backend

    def register_backend(self, backend: BackendClient) -> List[ToolDescriptor]:
        """
        Register a backend client and one tool per operation it declares.

        Returns:
            The descriptors that were registered
        """
        self.add_backend(backend)
        descriptors = [
            operation.to_descriptor(backend.name)
            for operation in backend.operations()
        ]
        for descriptor in descriptors:
            self.register(descriptor)
        logger.debug(f"Registered backend {backend.name} with {len(descriptors)} tools")
        return descriptors

    def register(self, descriptor: ToolDescriptor) -> None:
        """
        Insert a tool descriptor.

        Raises:
            DuplicateToolName: If the name already exists (the first
                registration is kept)
            MissingBackend: If the bound backend was never registered
            RegistryFrozen: If the registry has been frozen
        """
        self._check_not_frozen()
        if descriptor.name in self._tools:
            raise DuplicateToolName(descriptor.name)

        backend = self._backends.get(descriptor.binding.backend)
        if backend is None:
            raise MissingBackend(descriptor.name, descriptor.binding.backend)

        self._tools[descriptor.name] = descriptor
        logger.debug(f"Registered tool: {descriptor}")

    def freeze(self) -> None:
        """Refuse any further registration."""
        self._frozen = True

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def _check_not_frozen(self) -> None:
        if self._frozen:
            raise RegistryFrozen("Tool registry is frozen; tools can only be registered at startup")

    # ------------------------------------------------------------------
    # Lookup (safe during request handling)
    # ------------------------------------------------------------------

    def lookup(self, name: str) -> ToolDescriptor:
        """
        Get a tool descriptor by name.

        Raises:
            UnknownTool: If no tool with that name is registered
        """
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownTool(name) from None

    def list_tools(self) -> ValuesView[ToolDescriptor]:
        """
        All registered descriptors.

        The returned view is lazy and can be iterated any number of times.
        """
        return self._tools.values()

    def list_tool_names(self) -> List[str]:
        return list(self._tools.keys())

    def get_backend(self, name: str) -> BackendClient:
        """
        Get a backend client by name.

        Raises:
            KeyError: If no backend with that name is registered
        """
        return self._backends[name]

    def backend_for(self, descriptor: ToolDescriptor) -> BackendClient:
        """The backend client serving a descriptor."""
        return self._backends[descriptor.binding.backend]

    def list_backends(self) -> List[BackendClient]:
        return list(self._backends.values())

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self):
        return iter(self._tools.values())

    def get_registry_stats(self) -> Dict[str, Any]:
        """
        Get registry statistics.

        Returns:
            Dictionary with registry stats
        """
        return {
            "total_tools": len(self._tools),
            "total_backends": len(self._backends),
            "is_frozen": self._frozen,
            "is_initialized": self.is_initialized,
            "tool_names": self.list_tool_names(),
            "backends": list(self._backends.keys()),
        }

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Initialize every backend client (opens connection pools)."""
        if self.is_initialized:
            return

        for backend in self._backends.values():
            await backend.initialize()

        self.is_initialized = True

    async def close(self) -> None:
        """Close all backend clients and release their connections."""
        for backend in self._backends.values():
            try:
                await backend.close()
            except Exception as e:
                logger.warning(f"Error closing backend {backend.name}: {e}")

        self.is_initialized = False
