"""
Chats API Endpoints.

This module provides the interface for creating chats, sending messages,
deciding pending operations and cancelling active turns.

Includes:
- Chat CRUD operations (create, list, get, change mode)
- Transcript retrieval, including full texts of truncated operation summaries
- Turns and approvals streamed as Server-Sent Events (SSE); every SSE event
  is named after the event ``type`` and carries its JSON body
- Cancellation of the active turn of a chat
"""

from contextlib import aclosing
from typing import AsyncIterator, Dict, List

from fastapi import APIRouter, HTTPException
from sse_starlette.sse import EventSourceResponse

from oploop_ai.agent_core.schemas.domain import ApprovalRequest, ChatMeta, Message
from oploop_ai.agent_core.schemas.events import ErrorEvent, OrchestratorEvent
from oploop_ai.agent_core.service import (
    ChatNotFoundError,
    ChatService,
    ChatServiceError,
)
from oploop_ai.core.logging_config import get_logger
from oploop_ai.core.monitoring import log_error
from oploop_ai.server.schemas import (
    ApprovalSubmit,
    ArchivedOutput,
    CancelResult,
    ChatCreate,
    ChatModeUpdate,
    MessageCreate,
)
from oploop_ai.server.services.deps import ChatServiceDep

logger = get_logger(__name__)
router = APIRouter()


def serialize_event(event: OrchestratorEvent) -> Dict[str, str]:
    """Map an orchestrator event to an SSE message (``event`` name + JSON ``data``)."""
    return {"event": event.type, "data": event.model_dump_json(by_alias=True)}


async def sse_events(events: AsyncIterator[OrchestratorEvent]) -> AsyncIterator[Dict[str, str]]:
    """
    Convert a service event stream into SSE messages.

    Service errors raised while streaming (e.g. the chat became busy after
    the pre-check) are reported as a final ``error`` event.
    """
    try:
        async with aclosing(events) as stream:
            async for event in stream:
                yield serialize_event(event)
    except ChatServiceError as e:
        logger.info(f"Chat request rejected while streaming: {e}")
        yield serialize_event(ErrorEvent(error=str(e)))
    except Exception as e:
        logger.error(f"Error in chat event stream: {e}", exc_info=True)
        log_error("chat_stream_failed", str(e))
        yield serialize_event(ErrorEvent(error=str(e) or e.__class__.__name__))


async def _require_idle_chat(service: ChatService, chat_id: str) -> ChatMeta:
    try:
        chat = await service.get_chat(chat_id)
    except ChatNotFoundError:
        raise HTTPException(status_code=404, detail="Chat not found")
    if service.is_busy(chat.id):
        raise HTTPException(status_code=409, detail="Chat already has an active turn")
    return chat


@router.post(
    "/",
    response_model=ChatMeta,
    status_code=201,
    summary="Create Chat",
    description="Creates a new chat with an autonomy mode.",
    response_description="The created chat.",
)
async def create_chat(chat_in: ChatCreate, service: ChatServiceDep):
    """
    Create a new chat.

    - **title**: Display title (optional).
    - **mode**: Autonomy mode (optional, defaults to the server's default mode).
    - **assistant** / **model**: Optional overrides recorded on the chat.
    """
    return await service.create_chat(
        title=chat_in.title, mode=chat_in.mode, assistant=chat_in.assistant, model=chat_in.model
    )


@router.get(
    "/",
    response_model=List[ChatMeta],
    summary="List Chats",
    description="Retrieve chats, newest first.",
)
async def list_chats(service: ChatServiceDep, limit: int = 100, offset: int = 0):
    return await service.list_chats(limit=limit, offset=offset)


@router.get(
    "/{chat_id}",
    response_model=ChatMeta,
    summary="Get Chat",
)
async def get_chat(chat_id: str, service: ChatServiceDep):
    try:
        return await service.get_chat(chat_id)
    except ChatNotFoundError:
        raise HTTPException(status_code=404, detail="Chat not found")


@router.put(
    "/{chat_id}/mode",
    response_model=ChatMeta,
    summary="Change Chat Mode",
    description="Change the autonomy mode of a chat. Applies from the next turn.",
)
async def update_chat_mode(chat_id: str, body: ChatModeUpdate, service: ChatServiceDep):
    try:
        return await service.update_mode(chat_id, body.mode)
    except ChatNotFoundError:
        raise HTTPException(status_code=404, detail="Chat not found")


@router.get(
    "/{chat_id}/messages",
    response_model=List[Message],
    summary="List Messages",
    description="Retrieve the transcript of a chat ordered by creation time.",
)
async def list_messages(chat_id: str, service: ChatServiceDep):
    try:
        return await service.get_messages(chat_id)
    except ChatNotFoundError:
        raise HTTPException(status_code=404, detail="Chat not found")


@router.post(
    "/{chat_id}/messages",
    summary="Send Message",
    description="Send a user message and stream the resulting turn as Server-Sent Events.",
)
async def send_message(chat_id: str, body: MessageCreate, service: ChatServiceDep):
    """
    Send a message and stream the turn.

    Returns 404 for unknown chats and 409 when the chat already has an active
    turn. Disconnecting cancels the turn.
    """
    chat = await _require_idle_chat(service, chat_id)
    logger.info(f"Streaming turn for chat {chat.id}")
    return EventSourceResponse(sse_events(service.stream_message(chat.id, body.content)))


@router.post(
    "/{chat_id}/approvals",
    summary="Decide Operations",
    description="Approve or reject pending operations of a message and stream the outcome.",
)
async def submit_approvals(chat_id: str, body: ApprovalSubmit, service: ChatServiceDep):
    """
    Apply approve/reject decisions by operation index.

    Streams an ``approval`` event and, when every operation of the message
    concluded, the follow-up turn.
    """
    chat = await _require_idle_chat(service, chat_id)
    messages = await service.get_messages(chat.id)
    if not any(m.created == body.message_created for m in messages):
        raise HTTPException(status_code=404, detail="Message not found")

    request = ApprovalRequest(
        chat_id=chat.id,
        message_created=body.message_created,
        approved=body.approved,
        rejected=body.rejected,
        follow_up=body.follow_up,
    )
    logger.info(
        f"Applying decisions to message {body.message_created} of chat {chat.id}: "
        f"approved={body.approved} rejected={body.rejected}"
    )
    return EventSourceResponse(sse_events(service.stream_approval(request)))


@router.post(
    "/{chat_id}/cancel",
    response_model=CancelResult,
    summary="Cancel Turn",
    description="Signal the active turn of a chat to stop at its next checkpoint.",
)
async def cancel_turn(chat_id: str, service: ChatServiceDep):
    try:
        await service.get_chat(chat_id)
    except ChatNotFoundError:
        raise HTTPException(status_code=404, detail="Chat not found")
    return CancelResult(cancelled=service.cancel(chat_id))




@router.get(
    "/{chat_id}/archive/{key}",
    response_model=ArchivedOutput,
    summary="Get Archived Output",
    description="Retrieve the full text of an operation summary that was truncated under ``key``.",
)
async def get_archived_output(chat_id: str, key: str, service: ChatServiceDep):
    try:
        content = await service.get_archived(chat_id, key)
    except ChatNotFoundError:
        raise HTTPException(status_code=404, detail="Chat not found")
    if content is None:
        raise HTTPException(status_code=404, detail="Archived output not found")
    return ArchivedOutput(key=key, content=content)
