"""Handler registry and handler execution contracts.

A *handler* performs the side effect behind one operation kind.

- The operation manager resolves a kind through ``HandlerRegistry``.
- Handlers run with a ``HandlerContext`` carrying the chat, its mode, the
  turn's operations and named resources.
- Handlers never decide policy; the manager only invokes them once the
  operation is authorized or approved.

This package exports:

- ``OperationHandler``: protocol for async handler execution.
- ``HandlerRegistry``: kind to handler mapping.
- ``HandlerContext``/``HandlerResult``/``OperationAnalysis``: execution
  input/output models.
"""

from .base import HandlerContext, HandlerResult, OperationAnalysis, OperationHandler
from .registry import HandlerRegistry

__all__ = [
    "HandlerContext",
    "HandlerRegistry",
    "HandlerResult",
    "OperationAnalysis",
    "OperationHandler",
]
