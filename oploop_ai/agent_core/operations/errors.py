"""Error taxonomy for the operation lifecycle.

Operation-level errors (``ValidationError``, ``HandlerError``) are recorded on
the operation and never escape ``OperationManager.handle``.
``PolicyViolation`` marks an attempt to act on an operation that is not in an
eligible state; callers log it and move on. Turn-level errors
(``TurnTimeout``, ``TurnCancelled``) end the conversation loop.
"""

import asyncio


class OperationError(Exception):
    """Base class for operation lifecycle errors."""


class ValidationError(OperationError):
    """Malformed operation input; the operation fails before any handler call."""


class HandlerError(OperationError):
    """Domain failure reported by a handler or a missing handler."""


class PolicyViolation(OperationError):
    """Attempt to execute, approve or reject an operation in an ineligible state."""


class OperationsFrozenError(OperationError):
    """A new operation was proposed after the turn's operation list was frozen."""


class TurnTimeout(asyncio.TimeoutError):
    """The turn exceeded its wall-clock ceiling."""


class TurnCancelled(Exception):
    """The turn observed a user-initiated cancellation."""
