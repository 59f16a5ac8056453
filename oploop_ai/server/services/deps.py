"""
Chat Service Dependency.

Provides a singleton instance of the ChatService for API endpoints.
"""

from typing import Annotated

from fastapi import Depends

from oploop_ai.agent_core.service import ChatService
from oploop_ai.server.services.chat_runtime import get_chat_service

ChatServiceDep = Annotated[ChatService, Depends(get_chat_service)]
