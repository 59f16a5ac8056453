from __future__ import annotations

"""Handler protocol and execution data models.

A handler is the concrete side-effecting implementation behind one
operation kind. The operation manager resolves a kind through a
``HandlerRegistry`` and invokes the handler with a ``HandlerContext``.

Handlers should:

- return expected domain failures in ``HandlerResult.error`` instead of
  raising (unexpected exceptions are still caught and recorded),
- keep ``analyze`` free of side effects; it only previews the effect,
- avoid making policy decisions themselves (policy is enforced by the
  manager before invocation),
- own their retry behaviour, if any.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Protocol, Sequence

from ..schemas.domain import ChatMeta, ChatMode, Operation

if TYPE_CHECKING:
    from ..runtime.cancellation import CancellationToken


@dataclass(frozen=True)
class HandlerContext:
    """Execution context passed to handler implementations.

    Attributes
    ----------
    chat:
        Metadata of the chat the operation belongs to.
    mode:
        The chat's autonomy mode at the time of the turn.
    operations:
        The current turn's operations, in proposal order.
    resources:
        Named stores and clients handlers (and dynamic risk rules) may use,
        e.g. ``"todos"`` or ``"data"``.
    cancel:
        Cancellation token of the running turn, if any.
    """

    chat: ChatMeta
    mode: ChatMode
    operations: Sequence[Operation] = ()
    resources: Mapping[str, Any] = field(default_factory=dict)
    cancel: Optional["CancellationToken"] = None


@dataclass(frozen=True)
class HandlerResult:
    """Outcome of a handler execution.

    ``message`` optionally replaces the default headline of the operation's
    summary; ``error`` marks an expected domain failure.
    """

    output: Any = None
    message: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class OperationAnalysis:
    """Side-effect free preview of an operation awaiting approval."""

    analysis: str
    doable: bool = True


class OperationHandler(Protocol):
    """Protocol for handler implementations.

    Handlers may additionally define
    ``async analyze(ctx, *, input) -> OperationAnalysis``; without it the
    manager produces a generic preview.
    """

    kind: str

    async def execute(self, ctx: HandlerContext, *, input: Dict[str, Any]) -> HandlerResult: ...
