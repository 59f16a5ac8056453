import os
from typing import AsyncGenerator
from unittest.mock import patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Use in-memory SQLite for testing; set before importing the app
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
os.environ["DATABASE_URL"] = TEST_DATABASE_URL

from oploop_ai.agent_core.factory import build_chat_service  # noqa: E402
from oploop_ai.agent_core.handlers.builtin import TodoStore  # noqa: E402
from oploop_ai.agent_core.repos.memory import InMemoryChatRepository  # noqa: E402
from oploop_ai.agent_core.service import ChatService  # noqa: E402


@pytest.fixture
def chat_model(make_model):
    """Scripted model shared by the service; tests push turns onto ``chat_model.turns``."""
    return make_model()


@pytest.fixture
def chat_service(chat_model, todo_store: TodoStore) -> ChatService:
    return build_chat_service(chats=InMemoryChatRepository(), model=chat_model, resources={"todos": todo_store})


@pytest_asyncio.fixture(name="client")
async def client_fixture(chat_service: ChatService) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client with mocked lifespan and an in-memory chat service."""
    from oploop_ai.server.main import app
    from oploop_ai.server.services.chat_runtime import get_chat_service

    app.dependency_overrides[get_chat_service] = lambda: chat_service

    # Mock the lifespan to prevent database initialization during tests
    async def mock_lifespan(app):
        yield

    with patch("oploop_ai.server.main.lifespan", mock_lifespan):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://localhost") as client:
            yield client

    app.dependency_overrides.clear()
