from __future__ import annotations

"""SQLAlchemy ORM models for chat persistence.

These ORM models define the SQL schema used by the SQL repository
implementation in ``oploop_ai.agent_core.repos.sql``.

Design
------

- Chats store the metadata the orchestrator needs (mode, assistant, model).
- Chat messages are keyed by ``(chat_id, created)``; ``created`` is the
  message identity used by both the orchestrator and the approval path.
- Operations are embedded in their message as JSON, the same way they are
  embedded in ``Message.operations``.

Table names are prefixed with ``ol_`` to avoid collisions in shared databases.
"""

from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import JSON, BigInteger, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

_JSON = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


class ChatRow(Base):
    """Row model for ``ol_chats``."""

    __tablename__ = "ol_chats"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(256), default="")
    mode: Mapped[str] = mapped_column(String(16))
    assistant: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    model: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class ChatMessageRow(Base):
    """Row model for ``ol_chat_messages``.

    ``operations`` holds the JSON dump of the message's operations, or NULL
    for messages without any.
    """

    __tablename__ = "ol_chat_messages"
    __table_args__ = (UniqueConstraint("chat_id", "created", name="uq_ol_chat_messages_chat_created"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    chat_id: Mapped[str] = mapped_column(String(64), index=True)
    created: Mapped[int] = mapped_column(BigInteger)

    role: Mapped[str] = mapped_column(String(16))
    name: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    content: Mapped[str] = mapped_column(Text, default="")
    tokens: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    operations: Mapped[Optional[List[Any]]] = mapped_column(_JSON, nullable=True)
