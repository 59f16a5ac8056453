"""Conversation runtime.

- ``orchestrator``: LangGraph-based turn loop (``ConversationOrchestrator``).
- ``models``: config, dependency bundle and the turn state machine.
- ``tools``: operation kinds exposed to the model as tools.
- ``cancellation``: cooperative cancellation token.
"""

from .cancellation import CancellationToken
from .history import build_model_history
from .models import (
    EventSink,
    InvalidTransition,
    OrchestratorConfig,
    OrchestratorDeps,
    TokenCounter,
    TurnOutcome,
    TurnRequest,
    TurnStatus,
    estimate_tokens,
    transition,
)
from .orchestrator import ConversationOrchestrator
from .streaming import iterate_events
from .tools import build_tool_descriptors

__all__ = [
    "CancellationToken",
    "ConversationOrchestrator",
    "EventSink",
    "InvalidTransition",
    "OrchestratorConfig",
    "OrchestratorDeps",
    "TokenCounter",
    "TurnOutcome",
    "TurnRequest",
    "TurnStatus",
    "build_model_history",
    "build_tool_descriptors",
    "estimate_tokens",
    "iterate_events",
    "transition",
]
