"""Persistence boundary for chats and transcripts.

- ``interfaces``: ``ChatData`` / ``ChatRepository`` protocols.
- ``memory``: in-memory implementations for tests and local use.
- ``sql``: SQLAlchemy async implementations.
"""

from .interfaces import ChatData, ChatRepository, next_created, upsert_message
from .memory import InMemoryChatData, InMemoryChatRepository

__all__ = [
    "ChatData",
    "ChatRepository",
    "InMemoryChatData",
    "InMemoryChatRepository",
    "next_created",
    "upsert_message",
]
