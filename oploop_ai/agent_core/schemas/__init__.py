"""Schemas and DTOs for the agent core."""

from .domain import (
    ApprovalRequest,
    ChatMeta,
    ChatMode,
    Message,
    MessageRole,
    Operation,
    OperationRequest,
    OperationRiskKind,
    OperationStatus,
    OperationSummary,
)

__all__ = [
    "ApprovalRequest",
    "ChatMeta",
    "ChatMode",
    "Message",
    "MessageRole",
    "Operation",
    "OperationRequest",
    "OperationRiskKind",
    "OperationStatus",
    "OperationSummary",
]
