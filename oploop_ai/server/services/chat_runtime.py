"""
Chat Service Wiring.

Builds the process-wide ``ChatService`` from settings: SQL repositories on
the application database, the pydantic-ai chat model and the built-in
handlers with an in-memory todo store.
"""

from typing import Optional

from oploop_ai.agent_core.abstraction.pydantic_ai_model import PydanticAIChatModel
from oploop_ai.agent_core.factory import build_chat_service
from oploop_ai.agent_core.handlers.builtin import TodoStore
from oploop_ai.agent_core.repos.sql import SqlChatRepository
from oploop_ai.agent_core.runtime.models import OrchestratorConfig
from oploop_ai.agent_core.schemas.domain import ChatMode
from oploop_ai.agent_core.service import ChatService
from oploop_ai.core.logging_config import get_logger
from oploop_ai.server.core.config import settings
from oploop_ai.server.core.database import async_session_maker

logger = get_logger(__name__)

_chat_service: Optional[ChatService] = None


def create_chat_service() -> ChatService:
    turn = settings.turn
    config = OrchestratorConfig(
        timeout_seconds=turn.timeout_seconds,
        max_follow_up_turns=turn.max_follow_up_turns,
        max_message_chars=turn.max_message_chars,
        max_archived_outputs=turn.max_archived_outputs,
        assistant_name=settings.assistant_name,
        system_prompt=turn.system_prompt,
    )
    logger.info(f"Creating chat service (model={settings.chat_model}, timeout={turn.timeout_seconds}s)")
    return build_chat_service(
        chats=SqlChatRepository(async_session_maker),
        model=PydanticAIChatModel(settings.chat_model),
        config=config,
        resources={"todos": TodoStore()},
        default_mode=ChatMode(settings.default_chat_mode),
    )


def get_chat_service() -> ChatService:
    """Return the process-wide ``ChatService``, creating it on first use."""
    global _chat_service
    if _chat_service is None:
        _chat_service = create_chat_service()
    return _chat_service
