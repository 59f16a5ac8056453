from __future__ import annotations

"""Handler registry.

The registry maps an operation kind to the handler implementing it. The
operation manager uses it to execute and analyze operations; the
orchestrator uses ``kinds`` to offer only tools that can actually run.
"""

from typing import Dict, List

from .base import OperationHandler


class HandlerRegistry:
    """
    In-memory mapping of operation kinds to handler implementations.

    Notes:
        - ``register`` overwrites any existing mapping for the kind.
        - ``get`` will raise ``KeyError`` if the kind is missing.
    """

    def __init__(self) -> None:
        """Initialize an empty handler registry."""
        self._handlers: Dict[str, OperationHandler] = {}

    def register(self, handler: OperationHandler) -> None:
        """
        Register a handler implementation.

        Args:
            handler: The handler instance to register. It must expose a ``kind`` attribute.
        """
        self._handlers[handler.kind] = handler

    def get(self, kind: str) -> OperationHandler:
        """
        Retrieve a registered handler by kind.

        Raises:
            KeyError: If no handler is registered for the kind.
        """
        return self._handlers[kind]

    def has(self, kind: str) -> bool:
        return kind in self._handlers

    def kinds(self) -> List[str]:
        """Return the registered kinds in registration order."""
        return list(self._handlers)
