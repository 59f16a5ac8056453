"""
API Schemas.

Request and response bodies of the chat endpoints. Domain objects (chats,
messages, operations) are returned as-is from ``oploop_ai.agent_core``.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from oploop_ai.agent_core.schemas.domain import ChatMode


class ChatCreate(BaseModel):
    """Body of ``POST /chats``."""

    title: str = Field(default="", description="Display title of the chat")
    mode: Optional[ChatMode] = Field(default=None, description="Autonomy mode; server default when omitted")
    assistant: Optional[str] = Field(default=None, description="Assistant name recorded on the chat")
    model: Optional[str] = Field(default=None, description="Model override for this chat")


class ChatModeUpdate(BaseModel):
    """Body of ``PUT /chats/{chat_id}/mode``."""

    mode: ChatMode


class MessageCreate(BaseModel):
    """Body of ``POST /chats/{chat_id}/messages``."""

    content: str = Field(..., min_length=1, description="The user's message text")


class ApprovalSubmit(BaseModel):
    """Body of ``POST /chats/{chat_id}/approvals``."""

    message_created: int = Field(..., description="``created`` of the assistant message carrying the operations")
    approved: List[int] = Field(default_factory=list, description="Operation indices to execute")
    rejected: List[int] = Field(default_factory=list, description="Operation indices to reject")
    follow_up: bool = Field(default=True, description="Run a follow-up turn once every operation concluded")


class CancelResult(BaseModel):
    cancelled: bool


class ArchivedOutput(BaseModel):
    """Full text of a truncated operation summary."""

    key: str
    content: str
