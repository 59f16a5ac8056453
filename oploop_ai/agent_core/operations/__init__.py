"""Operation lifecycle: manager, approval resolver, summaries and errors.

- ``OperationManager``: per-turn state holder; classifies, decides and
  executes proposed operations.
- ``ApprovalResolver``: applies human decisions to stored operations.
- ``OutputArchive``: keeps full summaries of truncated operation messages.
"""

from .errors import (
    HandlerError,
    OperationError,
    OperationsFrozenError,
    PolicyViolation,
    TurnCancelled,
    TurnTimeout,
    ValidationError,
)
from .formatting import OutputArchive
from .manager import OperationManager, summarize
from .resolver import ApprovalResolver, ResolutionResult

__all__ = [
    "ApprovalResolver",
    "HandlerError",
    "OperationError",
    "OperationManager",
    "OperationsFrozenError",
    "OutputArchive",
    "PolicyViolation",
    "ResolutionResult",
    "TurnCancelled",
    "TurnTimeout",
    "ValidationError",
    "summarize",
]
