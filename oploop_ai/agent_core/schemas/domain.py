from __future__ import annotations

import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import Field

from .base import BaseSchema


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def now_ms() -> int:
    return int(time.time() * 1000)


class ChatMode(str, Enum):
    """Per-chat autonomy ceiling chosen by the user."""

    none = "none"
    read = "read"
    create = "create"
    update = "update"
    delete = "delete"


class OperationRiskKind(str, Enum):
    """Impact classification of an operation.

    ``local`` marks operations without externally visible side effects; they
    are always safe to run.
    """

    read = "read"
    local = "local"
    create = "create"
    update = "update"
    delete = "delete"


class OperationStatus(str, Enum):
    analyzing = "analyzing"
    analyzed = "analyzed"
    analyzed_blocked = "analyzedBlocked"
    doing = "doing"
    done = "done"
    failed = "failed"
    rejected = "rejected"


TERMINAL_STATUSES = frozenset({OperationStatus.done, OperationStatus.failed, OperationStatus.rejected})
AWAITING_APPROVAL_STATUSES = frozenset({OperationStatus.analyzed, OperationStatus.analyzed_blocked})


class MessageRole(str, Enum):
    user = "user"
    assistant = "assistant"
    system = "system"


class Operation(BaseSchema):
    """Mutable unit of work and its audit record.

    ``kind`` is resolved once by the catalog before any policy decision and
    is never re-derived afterwards. ``depends_on`` holds indices of earlier
    operations in the same turn.
    """

    type: str
    input: Dict[str, Any] = Field(default_factory=dict)
    kind: OperationRiskKind
    status: OperationStatus = OperationStatus.analyzing

    output: Optional[Any] = None
    error: Optional[str] = None
    message: Optional[str] = None
    analysis: Optional[str] = None

    depends_on: List[int] = Field(default_factory=list)
    start: Optional[int] = None
    end: Optional[int] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class Message(BaseSchema):
    """A transcript entry. ``created`` (epoch milliseconds) is its identity key within a chat."""

    role: MessageRole
    content: str = ""
    created: int = Field(default_factory=now_ms)
    name: Optional[str] = None
    tokens: Optional[int] = None
    operations: Optional[List[Operation]] = None


class ChatMeta(BaseSchema):
    id: str = Field(default_factory=lambda: str(uuid4()))
    title: str = ""
    mode: ChatMode = ChatMode.none
    assistant: Optional[str] = None
    model: Optional[str] = None

    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)


class OperationRequest(BaseSchema):
    """Raw operation proposal received from a tool call."""

    type: str
    input: Dict[str, Any] = Field(default_factory=dict)
    depends_on: List[int] = Field(default_factory=list)


class OperationSummary(BaseSchema):
    """Counts of a turn's operations grouped by lifecycle outcome."""

    total: int = 0
    done: int = 0
    need_approval: int = Field(default=0, alias="needApproval")
    blocked: int = 0
    errors: int = 0
    rejected: int = 0

    @property
    def text(self) -> str:
        noun = "operation" if self.total == 1 else "operations"
        return (
            f"{self.total} {noun} ({self.done} done, {self.need_approval} need approval, "
            f"{self.blocked} blocked, {self.errors} failed, {self.rejected} rejected)"
        )


class ApprovalRequest(BaseSchema):
    """Human decisions for the pending operations of one stored message."""

    chat_id: str
    message_created: int
    approved: List[int] = Field(default_factory=list)
    rejected: List[int] = Field(default_factory=list)
    follow_up: bool = True
