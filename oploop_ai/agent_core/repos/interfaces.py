from __future__ import annotations

"""Repository interface contracts.

The orchestrator and the chat service depend on these Protocols instead of
concrete persistence implementations.

Contract guidelines
-------------------

- All methods are async.
- ``ChatData.save`` applies a mutator to the stored message list as one
  logical update (read, mutate, write). Messages are identified by their
  ``created`` timestamp, which must be unique within a chat.
- ``ChatData.get_messages`` returns copies; mutating them does not change
  the stored transcript until they are written back through ``save``.
"""

from typing import Callable, List, Optional, Protocol

from ..schemas.domain import ChatMeta, Message

MessagesMutator = Callable[[List[Message]], Optional[List[Message]]]


class ChatData(Protocol):
    """Transcript of a single chat."""

    async def save(self, mutator: MessagesMutator) -> List[Message]:
        """
        Apply ``mutator`` to the stored messages atomically.

        Args:
            mutator: Receives the current list and either mutates it in
                place (returning None) or returns a replacement list.

        Returns:
            The stored messages after the update.
        """
        ...

    async def get_messages(self) -> List[Message]:
        """Return the stored messages ordered by ``created``."""
        ...


class ChatRepository(Protocol):
    """Persist chat metadata and hand out per-chat transcripts."""

    async def create(self, chat: ChatMeta) -> None:
        ...

    async def get(self, chat_id: str) -> Optional[ChatMeta]:
        ...

    async def update(self, chat: ChatMeta) -> None:
        ...

    async def list(self, limit: int = 100, offset: int = 0) -> List[ChatMeta]:
        ...

    def chat_data(self, chat_id: str) -> ChatData:
        """Return the transcript accessor for ``chat_id``."""
        ...


def next_created(messages: List[Message], candidate: int) -> int:
    """Return ``candidate`` bumped past the newest ``created`` in ``messages``."""
    if messages:
        newest = max(m.created for m in messages)
        if candidate <= newest:
            return newest + 1
    return candidate


def upsert_message(messages: List[Message], message: Message) -> None:
    """Replace the message with the same ``created`` or append it."""
    for i, existing in enumerate(messages):
        if existing.created == message.created:
            messages[i] = message
            return
    messages.append(message)
