from __future__ import annotations

"""Event unions for the model boundary and the orchestrator boundary.

Both unions are discriminated on ``type`` so a stream can be consumed with a
plain ``isinstance`` dispatch or serialized with ``model_dump_json`` for SSE.

Model events (produced by a ``ChatModel``)
------------------------------------------

``textPartial`` / ``textComplete`` / ``textReset`` carry answer text,
``reason`` carries reasoning text, ``toolStart`` announces a tool call,
``requestTokens`` / ``responseTokens`` / ``usage`` carry token figures and
``complete`` closes the stream.

Orchestrator events (consumed by transports)
--------------------------------------------

``userMessage``, ``pendingUpdate``, ``tokens``, ``elapsed``, ``operations``,
``status``, ``complete`` and ``error``. ``approval`` is emitted by the chat
service after an approval decision has been applied.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import Field

from .base import BaseSchema
from .domain import Message, Operation, OperationSummary


class TextPartialEvent(BaseSchema):
    type: Literal["textPartial"] = "textPartial"
    content: str


class TextCompleteEvent(BaseSchema):
    type: Literal["textComplete"] = "textComplete"
    content: str


class TextResetEvent(BaseSchema):
    type: Literal["textReset"] = "textReset"
    reason: Optional[str] = None


class RequestTokensEvent(BaseSchema):
    type: Literal["requestTokens"] = "requestTokens"
    tokens: int


class ResponseTokensEvent(BaseSchema):
    type: Literal["responseTokens"] = "responseTokens"
    tokens: int


class ReasonEvent(BaseSchema):
    type: Literal["reason"] = "reason"
    content: str


class ToolStartEvent(BaseSchema):
    type: Literal["toolStart"] = "toolStart"
    name: str
    input: Dict[str, Any] = Field(default_factory=dict)


class UsageEvent(BaseSchema):
    type: Literal["usage"] = "usage"
    input_tokens: int = 0
    output_tokens: int = 0
    reasoning_tokens: int = 0


class ModelCompleteEvent(BaseSchema):
    type: Literal["complete"] = "complete"


ModelEvent = Annotated[
    Union[
        TextPartialEvent,
        TextCompleteEvent,
        TextResetEvent,
        RequestTokensEvent,
        ResponseTokensEvent,
        ReasonEvent,
        ToolStartEvent,
        UsageEvent,
        ModelCompleteEvent,
    ],
    Field(discriminator="type"),
]


class UserMessageEvent(BaseSchema):
    type: Literal["userMessage"] = "userMessage"
    message: Message


class PendingUpdateEvent(BaseSchema):
    type: Literal["pendingUpdate"] = "pendingUpdate"
    message: Message


class TokensEvent(BaseSchema):
    type: Literal["tokens"] = "tokens"
    output: int = 0
    reasoning: int = 0
    discarded: int = 0


class ElapsedEvent(BaseSchema):
    type: Literal["elapsed"] = "elapsed"
    ms: int


class OperationsEvent(BaseSchema):
    type: Literal["operations"] = "operations"
    operations: List[Operation]
    summary: OperationSummary


class StatusEvent(BaseSchema):
    type: Literal["status"] = "status"
    status: str


class CompleteEvent(BaseSchema):
    type: Literal["complete"] = "complete"
    message: Message


class ErrorEvent(BaseSchema):
    type: Literal["error"] = "error"
    error: str


class ApprovalEvent(BaseSchema):
    type: Literal["approval"] = "approval"
    message_created: int
    operations: List[Operation]
    summary: OperationSummary
    all_terminal: bool


OrchestratorEvent = Annotated[
    Union[
        UserMessageEvent,
        PendingUpdateEvent,
        TokensEvent,
        ElapsedEvent,
        OperationsEvent,
        StatusEvent,
        CompleteEvent,
        ErrorEvent,
        ApprovalEvent,
    ],
    Field(discriminator="type"),
]
