"""Core conversation runtime, operation lifecycle and persistence abstractions.

Design overview
---------------

A chat has an autonomy *mode* (none, read, create, update, delete). During a
turn the model proposes *operations* through tool calls:

- The catalog classifies each operation's risk exactly once.
- The autonomy policy decides whether the risk fits the chat's mode. Local
  operations always run.
- The operation manager executes authorized operations immediately and
  parks the rest as ``analyzed`` (approvable) or ``analyzedBlocked``.

Execution of a turn is performed by ``runtime.ConversationOrchestrator``
using LangGraph. It streams progress events, persists the assistant message
and loops for a bounded number of follow-up turns while every operation
concluded on its own.

Pending operations are decided later through ``operations.ApprovalResolver``.

Typical usage
-------------

Most applications should use ``service.ChatService`` (see
``factory.build_chat_service``):

1. Create a chat.
2. Send a message and consume the turn's events.
3. If approval is required, approve/reject by index; a follow-up turn runs
   once every operation concluded.
"""

from .factory import build_chat_service, build_default_registry, build_orchestrator, build_resolver
from .runtime import CancellationToken, ConversationOrchestrator, OrchestratorConfig, TurnStatus
from .schemas.domain import (
    ApprovalRequest,
    ChatMeta,
    ChatMode,
    Message,
    MessageRole,
    Operation,
    OperationRiskKind,
    OperationStatus,
)
from .service import (
    ApprovalOutcome,
    ChatBusyError,
    ChatNotFoundError,
    ChatService,
    ChatServiceDeps,
    MessageNotFoundError,
)

__all__ = [
    "ApprovalOutcome",
    "ApprovalRequest",
    "CancellationToken",
    "ChatBusyError",
    "ChatMeta",
    "ChatMode",
    "ChatNotFoundError",
    "ChatService",
    "ChatServiceDeps",
    "ConversationOrchestrator",
    "Message",
    "MessageNotFoundError",
    "MessageRole",
    "Operation",
    "OperationRiskKind",
    "OperationStatus",
    "OrchestratorConfig",
    "TurnStatus",
    "build_chat_service",
    "build_default_registry",
    "build_orchestrator",
    "build_resolver",
]
