from __future__ import annotations

from typing import Any, Callable

import pytest

from oploop_ai.agent_core.factory import build_default_registry
from oploop_ai.agent_core.handlers.base import HandlerContext
from oploop_ai.agent_core.handlers.builtin import TodoStore
from oploop_ai.agent_core.schemas.domain import ChatMeta, ChatMode


@pytest.fixture
def registry():
    return build_default_registry()


@pytest.fixture
def make_ctx(todo_store: TodoStore) -> Callable[..., HandlerContext]:
    def _make(mode: ChatMode = ChatMode.none, **resources: Any) -> HandlerContext:
        chat = ChatMeta(id="chat-1", mode=mode)
        return HandlerContext(chat=chat, mode=mode, resources={"todos": todo_store, **resources})

    return _make
