from __future__ import annotations

"""SQLAlchemy async repository implementations.

This module provides a SQL-backed implementation of the repository
interfaces defined in ``oploop_ai.agent_core.repos.interfaces``. It works
with Postgres (asyncpg) and SQLite (aiosqlite).

Usage
-----

- Create an async engine with ``create_engine``.
- Create tables with ``create_all`` (for tests/dev).
- Create a session factory with ``create_sessionmaker``.
- Build a ``SqlChatRepository`` from the session factory.

Transaction model
-----------------

``SqlChatData.save`` loads the chat's messages, applies the mutator and
writes back the difference keyed by ``created``, all inside one transaction.
Together with the single-active-turn rule this gives the read-modify-write
semantics the orchestrator and the approval path rely on.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ..schemas.domain import ChatMeta, ChatMode, Message, MessageRole, Operation
from .interfaces import ChatData, ChatRepository, MessagesMutator
from .models import Base, ChatMessageRow, ChatRow


def create_engine(db_url: str) -> AsyncEngine:
    """Create an async SQLAlchemy engine.

    Postgres URLs are normalized to the asyncpg driver, for example
    ``postgresql://`` becomes ``postgresql+asyncpg://``. Other URLs are used
    as given.
    """
    url = re.sub(r"^postgres(?:ql)?(?:\+[a-z0-9_]+)?://", "postgresql+asyncpg://", db_url, count=1)
    if url.startswith("postgresql+asyncpg://"):
        return create_async_engine(url, pool_pre_ping=True)
    return create_async_engine(url)


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an ``async_sessionmaker`` with safe defaults for this project."""
    return async_sessionmaker(engine, expire_on_commit=False)


async def create_all(engine: AsyncEngine) -> None:
    """Create all tables for the current ORM metadata.

    This is mainly intended for tests and local development.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _row_to_message(row: ChatMessageRow) -> Message:
    operations = None
    if row.operations is not None:
        operations = [Operation.model_validate(o) for o in row.operations]
    return Message(
        role=MessageRole(row.role),
        content=row.content or "",
        created=row.created,
        name=row.name,
        tokens=row.tokens,
        operations=operations,
    )


def _apply(row: ChatMessageRow, message: Message) -> None:
    row.role = message.role.value
    row.name = message.name
    row.content = message.content
    row.tokens = message.tokens
    row.operations = (
        [op.model_dump(mode="json") for op in message.operations] if message.operations is not None else None
    )


def _row_to_chat(row: ChatRow) -> ChatMeta:
    return ChatMeta(
        id=row.id,
        title=row.title or "",
        mode=ChatMode(row.mode),
        assistant=row.assistant,
        model=row.model,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


@dataclass(frozen=True)
class SqlChatData(ChatData):
    """SQL implementation of ``ChatData`` for one chat."""

    session_factory: async_sessionmaker[AsyncSession]
    chat_id: str

    async def _load(self, s: AsyncSession) -> List[ChatMessageRow]:
        res = await s.execute(
            select(ChatMessageRow).where(ChatMessageRow.chat_id == self.chat_id).order_by(ChatMessageRow.created)
        )
        return list(res.scalars().all())

    async def save(self, mutator: MessagesMutator) -> List[Message]:
        """
        Apply ``mutator`` inside a single transaction.

        Rows are matched to messages by ``created``: changed messages update
        their row, new ones are inserted and missing ones are deleted.
        """
        async with self.session_factory() as s:
            async with s.begin():
                rows = await self._load(s)
                by_created: Dict[int, ChatMessageRow] = {r.created: r for r in rows}
                messages = [_row_to_message(r) for r in rows]

                replaced = mutator(messages)
                if replaced is not None:
                    messages = list(replaced)

                keep = set()
                for message in messages:
                    keep.add(message.created)
                    row = by_created.get(message.created)
                    if row is None:
                        row = ChatMessageRow(chat_id=self.chat_id, created=message.created)
                        s.add(row)
                    _apply(row, message)

                stale = [created for created in by_created if created not in keep]
                if stale:
                    await s.execute(
                        delete(ChatMessageRow).where(
                            ChatMessageRow.chat_id == self.chat_id, ChatMessageRow.created.in_(stale)
                        )
                    )
            return sorted(messages, key=lambda m: m.created)

    async def get_messages(self) -> List[Message]:
        async with self.session_factory() as s:
            return [_row_to_message(r) for r in await self._load(s)]


@dataclass(frozen=True)
class SqlChatRepository(ChatRepository):
    """SQL implementation of ``ChatRepository``."""

    session_factory: async_sessionmaker[AsyncSession]

    async def create(self, chat: ChatMeta) -> None:
        async with self.session_factory() as s:
            s.add(
                ChatRow(
                    id=chat.id,
                    title=chat.title,
                    mode=chat.mode.value,
                    assistant=chat.assistant,
                    model=chat.model,
                    created_at=chat.created_at,
                    updated_at=chat.updated_at,
                )
            )
            await s.commit()

    async def get(self, chat_id: str) -> Optional[ChatMeta]:
        async with self.session_factory() as s:
            row = await s.get(ChatRow, chat_id)
            return _row_to_chat(row) if row is not None else None

    async def update(self, chat: ChatMeta) -> None:
        """Update an existing chat's metadata; unknown chats are a no-op."""
        async with self.session_factory() as s:
            row = await s.get(ChatRow, chat.id)
            if row is None:
                return
            row.title = chat.title
            row.mode = chat.mode.value
            row.assistant = chat.assistant
            row.model = chat.model
            row.updated_at = _utc_now()
            await s.commit()

    async def list(self, limit: int = 100, offset: int = 0) -> List[ChatMeta]:
        async with self.session_factory() as s:
            res = await s.execute(select(ChatRow).order_by(ChatRow.created_at.desc()).limit(limit).offset(offset))
            return [_row_to_chat(r) for r in res.scalars().all()]

    def chat_data(self, chat_id: str) -> SqlChatData:
        return SqlChatData(session_factory=self.session_factory, chat_id=chat_id)
