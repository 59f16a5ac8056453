from __future__ import annotations

"""Orchestrator configuration, dependency bundle, turn state and LangGraph state types.

- ``OrchestratorConfig`` holds the loop limits (timeout, follow-up bound).
- ``OrchestratorDeps`` collects the collaborators the orchestrator needs.
- ``TurnStatus`` and ``transition`` implement the turn state machine.
- ``_GraphState`` is the small state passed between LangGraph nodes; the
  per-run objects (emit callback, chat data, pending message) live outside
  the graph and are looked up by ``run_id``.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    FrozenSet,
    Mapping,
    NotRequired,
    Optional,
    Required,
    TypedDict,
)

from pydantic import Field

from ..abstraction.base import ChatModel
from ..catalog import DEFAULT_CATALOG, OperationCatalog
from ..handlers.registry import HandlerRegistry
from ..operations.formatting import OutputArchive
from ..policy.autonomy import AutonomyPolicy
from ..repos.interfaces import ChatData
from ..schemas.base import BaseSchema
from ..schemas.domain import ChatMeta, Message
from ..schemas.events import OrchestratorEvent

EventSink = Callable[[OrchestratorEvent], Awaitable[None]]


class OrchestratorConfig(BaseSchema):
    """
    Limits and presentation settings of the conversation loop.

    ``max_follow_up_turns`` bounds how many extra model turns run
    automatically after every operation of a turn concluded on its own.
    """
    timeout_seconds: float = Field(default=300.0, gt=0)
    max_follow_up_turns: int = Field(default=1, ge=0)
    max_message_chars: int = Field(default=8000, ge=0)
    max_archived_outputs: int = Field(default=1000, ge=1)
    assistant_name: Optional[str] = None
    system_prompt: Optional[str] = None


class TurnStatus(str, Enum):
    idle = "idle"
    running = "running"
    awaiting_approval = "awaitingApproval"
    done = "done"
    cancelled = "cancelled"
    errored = "errored"


_TRANSITIONS: Dict[TurnStatus, FrozenSet[TurnStatus]] = {
    TurnStatus.idle: frozenset({TurnStatus.running}),
    TurnStatus.running: frozenset(
        {TurnStatus.awaiting_approval, TurnStatus.done, TurnStatus.cancelled, TurnStatus.errored}
    ),
    TurnStatus.awaiting_approval: frozenset(),
    TurnStatus.done: frozenset(),
    TurnStatus.cancelled: frozenset(),
    TurnStatus.errored: frozenset(),
}


class InvalidTransition(RuntimeError):
    pass


def transition(current: TurnStatus, target: TurnStatus) -> TurnStatus:
    """Return ``target`` if the turn may move there from ``current``."""
    if target not in _TRANSITIONS[current]:
        raise InvalidTransition(f"turn cannot move from {current.value} to {target.value}")
    return target


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / 4)


@dataclass
class TokenCounter:
    """Token accounting of one model turn.

    ``discarded`` collects output that was thrown away (answer restarts,
    tool call payloads) until the provider reports real usage.
    """

    output: int = 0
    reasoning: int = 0
    discarded: int = 0


@dataclass(frozen=True)
class OrchestratorDeps:
    """Dependency bundle for ``ConversationOrchestrator``."""

    model: ChatModel
    handlers: HandlerRegistry
    catalog: OperationCatalog = field(default_factory=lambda: DEFAULT_CATALOG)
    policy: AutonomyPolicy = field(default_factory=AutonomyPolicy)
    archive: Optional[OutputArchive] = None


@dataclass(frozen=True)
class TurnRequest:
    """What the orchestrator needs to run turns for one chat."""

    chat: ChatMeta
    chat_data: ChatData
    resources: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TurnOutcome:
    status: TurnStatus
    message: Optional[Message]
    iterations: int
    error: Optional[str] = None


class _GraphState(TypedDict):
    """Mutable LangGraph state for a single orchestrator run.

    Required keys:

    - ``run_id``: key of the per-run context held by the orchestrator.
    - ``iteration``: zero-based model turn index.
    - ``follow_ups``: automatic follow-up turns already used.

    Optional keys:

    - ``_next``: routing decision after a turn (``continue``/``finish``).
    - ``_status``: final turn status chosen by the last turn.
    """

    run_id: Required[str]
    iteration: Required[int]
    follow_ups: Required[int]
    _next: NotRequired[str]
    _status: NotRequired[str]
