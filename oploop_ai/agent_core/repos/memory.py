from __future__ import annotations

"""In-memory repository implementations.

Used by tests and single-process deployments. Each chat's transcript is
guarded by an ``asyncio.Lock`` so concurrent ``save`` calls apply one after
the other.
"""

import asyncio
from typing import Dict, List, Optional

from ..schemas.domain import ChatMeta, Message
from .interfaces import ChatData, ChatRepository, MessagesMutator


def _copy(messages: List[Message]) -> List[Message]:
    return [m.model_copy(deep=True) for m in messages]


class InMemoryChatData(ChatData):
    """Transcript kept in a Python list."""

    def __init__(self) -> None:
        self._messages: List[Message] = []
        self._lock = asyncio.Lock()

    async def save(self, mutator: MessagesMutator) -> List[Message]:
        async with self._lock:
            working = _copy(self._messages)
            replaced = mutator(working)
            if replaced is not None:
                working = list(replaced)
            working.sort(key=lambda m: m.created)
            self._messages = working
            return _copy(working)

    async def get_messages(self) -> List[Message]:
        return _copy(self._messages)


class InMemoryChatRepository(ChatRepository):
    """Chat metadata and transcripts kept in dictionaries."""

    def __init__(self) -> None:
        self._chats: Dict[str, ChatMeta] = {}
        self._data: Dict[str, InMemoryChatData] = {}

    async def create(self, chat: ChatMeta) -> None:
        self._chats[chat.id] = chat.model_copy(deep=True)

    async def get(self, chat_id: str) -> Optional[ChatMeta]:
        chat = self._chats.get(chat_id)
        return chat.model_copy(deep=True) if chat is not None else None

    async def update(self, chat: ChatMeta) -> None:
        if chat.id in self._chats:
            self._chats[chat.id] = chat.model_copy(deep=True)

    async def list(self, limit: int = 100, offset: int = 0) -> List[ChatMeta]:
        chats = sorted(self._chats.values(), key=lambda c: c.created_at, reverse=True)
        return [c.model_copy(deep=True) for c in chats[offset : offset + limit]]

    def chat_data(self, chat_id: str) -> InMemoryChatData:
        return self._data.setdefault(chat_id, InMemoryChatData())
