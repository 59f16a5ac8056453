from __future__ import annotations

"""High-level chat service.

``ChatService`` is the application-facing API on top of the orchestrator and
the approval resolver. Transports (the HTTP server, tests) call it instead of
wiring the runtime themselves.

Workflow
--------

- ``send_message``:

  1. Stores the user message and emits ``userMessage``.
  2. Runs one orchestrator turn for the chat.

- ``approve``:

  1. Loads the stored assistant message addressed by ``created``.
  2. Applies the decisions with ``ApprovalResolver`` and saves the message.
  3. Emits ``approval`` and, when every operation of the message concluded
     and something changed, runs a follow-up turn.

At most one turn or approval runs per chat at a time; a second request for a
busy chat fails with ``ChatBusyError``. ``cancel`` signals the active turn of
a chat.

``ChatService`` is intentionally thin: it does not contain policy logic
itself.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional

from .operations.formatting import OutputArchive
from .operations.resolver import ApprovalResolver, ResolutionResult
from .handlers.base import HandlerContext
from .repos.interfaces import ChatRepository, next_created, upsert_message
from .runtime.cancellation import CancellationToken
from .runtime.models import EventSink, TurnOutcome, TurnRequest
from .runtime.orchestrator import ConversationOrchestrator
from .runtime.streaming import iterate_events
from .schemas.domain import ApprovalRequest, ChatMeta, ChatMode, Message, MessageRole, now_ms
from .schemas.events import ApprovalEvent, OrchestratorEvent, UserMessageEvent

logger = logging.getLogger(__name__)


class ChatServiceError(Exception):
    pass


class ChatNotFoundError(ChatServiceError):
    pass


class MessageNotFoundError(ChatServiceError):
    pass


class ChatBusyError(ChatServiceError):
    pass


@dataclass(frozen=True)
class ChatServiceDeps:
    """Dependency bundle for ``ChatService``.

    ``resources`` is handed to every handler context (e.g. the todo store).
    """

    chats: ChatRepository
    orchestrator: ConversationOrchestrator
    resolver: ApprovalResolver
    resources: Mapping[str, Any] = field(default_factory=dict)
    default_mode: ChatMode = ChatMode.none
    archive: Optional[OutputArchive] = None


@dataclass(frozen=True)
class ApprovalOutcome:
    resolution: ResolutionResult
    turn: Optional[TurnOutcome] = None


class ChatService:
    """Run turns and approvals for chats, one at a time per chat."""

    def __init__(self, *, deps: ChatServiceDeps) -> None:
        self._deps = deps
        self._active: Dict[str, CancellationToken] = {}

    async def create_chat(
        self,
        *,
        title: str = "",
        mode: Optional[ChatMode] = None,
        assistant: Optional[str] = None,
        model: Optional[str] = None,
    ) -> ChatMeta:
        chat = ChatMeta(
            title=title,
            mode=mode if mode is not None else self._deps.default_mode,
            assistant=assistant,
            model=model,
        )
        await self._deps.chats.create(chat)
        logger.info(f"Created chat {chat.id} (mode={chat.mode.value})")
        return chat

    async def get_chat(self, chat_id: str) -> ChatMeta:
        chat = await self._deps.chats.get(chat_id)
        if chat is None:
            raise ChatNotFoundError(f"chat {chat_id} not found")
        return chat

    async def list_chats(self, limit: int = 100, offset: int = 0) -> List[ChatMeta]:
        return await self._deps.chats.list(limit=limit, offset=offset)

    async def get_messages(self, chat_id: str) -> List[Message]:
        await self.get_chat(chat_id)
        return await self._deps.chats.chat_data(chat_id).get_messages()

    async def update_mode(self, chat_id: str, mode: ChatMode) -> ChatMeta:
        """Change a chat's autonomy mode. Takes effect from the next turn."""
        chat = await self.get_chat(chat_id)
        chat = chat.model_copy(update={"mode": ChatMode(mode)})
        await self._deps.chats.update(chat)
        return chat

    async def get_archived(self, chat_id: str, key: str) -> Optional[str]:
        """Full text of a truncated operation summary, or None once evicted or unknown."""
        await self.get_chat(chat_id)
        if self._deps.archive is None:
            return None
        return self._deps.archive.get(key)

    def is_busy(self, chat_id: str) -> bool:
        return chat_id in self._active

    def cancel(self, chat_id: str) -> bool:
        """Signal the active turn of ``chat_id``. Returns False when nothing is running."""
        token = self._active.get(chat_id)
        if token is None:
            return False
        token.cancel()
        logger.info(f"Cancellation requested for chat {chat_id}")
        return True

    @asynccontextmanager
    async def _slot(self, chat_id: str, cancel: Optional[CancellationToken]) -> AsyncIterator[CancellationToken]:
        if chat_id in self._active:
            raise ChatBusyError(f"chat {chat_id} already has an active turn")
        token = cancel or CancellationToken()
        self._active[chat_id] = token
        try:
            yield token
        finally:
            self._active.pop(chat_id, None)

    async def send_message(
        self,
        chat_id: str,
        content: str,
        emit: EventSink,
        cancel: Optional[CancellationToken] = None,
    ) -> TurnOutcome:
        """
        Store a user message and run a turn for it.

        Raises:
            ChatNotFoundError: If the chat does not exist.
            ChatBusyError: If the chat already has an active turn.
        """
        chat = await self.get_chat(chat_id)
        async with self._slot(chat.id, cancel) as token:
            chat_data = self._deps.chats.chat_data(chat.id)
            stored: List[Message] = []

            def add_user_message(messages: List[Message]) -> None:
                message = Message(role=MessageRole.user, content=content, created=next_created(messages, now_ms()))
                messages.append(message)
                stored.append(message.model_copy(deep=True))

            await chat_data.save(add_user_message)
            await emit(UserMessageEvent(message=stored[0]))
            return await self._deps.orchestrator.run(
                TurnRequest(chat=chat, chat_data=chat_data, resources=self._deps.resources), emit, token
            )

    async def approve(
        self,
        request: ApprovalRequest,
        emit: EventSink,
        cancel: Optional[CancellationToken] = None,
    ) -> ApprovalOutcome:
        """
        Apply approve/reject decisions to one stored message.

        Raises:
            ChatNotFoundError: If the chat does not exist.
            MessageNotFoundError: If no message has ``request.message_created``.
            ChatBusyError: If the chat already has an active turn.
        """
        chat = await self.get_chat(request.chat_id)
        async with self._slot(chat.id, cancel) as token:
            chat_data = self._deps.chats.chat_data(chat.id)
            messages = await chat_data.get_messages()
            message = next((m for m in messages if m.created == request.message_created), None)
            if message is None:
                raise MessageNotFoundError(f"message {request.message_created} not found in chat {chat.id}")

            ctx = HandlerContext(
                chat=chat,
                mode=chat.mode,
                operations=message.operations or [],
                resources=self._deps.resources,
                cancel=token,
            )
            result = await self._deps.resolver.resolve(message, request.approved, request.rejected, ctx)

            stored = message.model_copy(deep=True)
            await chat_data.save(lambda current: upsert_message(current, stored))
            await emit(
                ApprovalEvent(
                    message_created=message.created,
                    operations=[op.model_copy(deep=True) for op in message.operations or []],
                    summary=result.summary,
                    all_terminal=result.all_terminal,
                )
            )

            turn: Optional[TurnOutcome] = None
            if request.follow_up and result.all_terminal and result.changed:
                logger.debug(f"Chat {chat.id}: approvals concluded message {message.created}, running follow-up")
                turn = await self._deps.orchestrator.run(
                    TurnRequest(chat=chat, chat_data=chat_data, resources=self._deps.resources), emit, token
                )
            return ApprovalOutcome(resolution=result, turn=turn)

    def stream_message(self, chat_id: str, content: str) -> AsyncIterator[OrchestratorEvent]:
        """``send_message`` as an async iterator; closing it cancels the turn."""
        token = CancellationToken()
        return iterate_events(lambda emit: self.send_message(chat_id, content, emit, token), on_close=token.cancel)

    def stream_approval(self, request: ApprovalRequest) -> AsyncIterator[OrchestratorEvent]:
        """``approve`` as an async iterator; closing it cancels any follow-up turn."""
        token = CancellationToken()
        return iterate_events(lambda emit: self.approve(request, emit, token), on_close=token.cancel)
