from __future__ import annotations

from pathlib import Path
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Iterable, List, Sequence, Tuple, Union

import httpx
import pytest
from dotenv import load_dotenv

from oploop_ai.agent_core.abstraction.base import ModelRequest
from oploop_ai.agent_core.handlers.builtin import TodoStore
from oploop_ai.agent_core.schemas.events import ModelCompleteEvent, ModelEvent, ToolStartEvent

# Load dotenv files early so test fixtures can read settings via os.getenv
TEST_ROOT = Path(__file__).resolve().parent
# Load test/.env first, then fallback to test/.env.example for defaults
load_dotenv(TEST_ROOT / ".env", override=False)
load_dotenv(TEST_ROOT / ".env.example", override=False)


@pytest.fixture(autouse=True)
def _global_offline_http_guard(monkeypatch: pytest.MonkeyPatch):
    allowed_prefixes: Iterable[str] = (
        "http://mock",
        "https://mock",
        "http://localhost",
        "http://127.0.0.1",
        "http://0.0.0.0",
        "http://test",
        "/",  # Allow relative paths (used by ASGI transport)
    )

    orig_sync = httpx._client.Client.request
    orig_async = httpx._client.AsyncClient.request

    def _is_allowed(url_str: str) -> bool:
        return any(url_str.startswith(p) for p in allowed_prefixes)

    def offline_sync(self, method, url, *args, **kwargs):
        url_str = str(url)
        if _is_allowed(url_str):
            return orig_sync(self, method, url, *args, **kwargs)
        raise RuntimeError(f"External HTTP blocked by global offline guard: {url_str}")

    async def offline_async(self, method, url, *args, **kwargs):
        url_str = str(url)
        if _is_allowed(url_str):
            return await orig_async(self, method, url, *args, **kwargs)
        raise RuntimeError(f"External HTTP blocked by global offline guard (async): {url_str}")

    monkeypatch.setattr(httpx._client.Client, "request", offline_sync, raising=True)
    monkeypatch.setattr(httpx._client.AsyncClient, "request", offline_async, raising=True)

# A script step is a model event to yield, a ("tool", name, args) call routed
# through the request's tools, or an async hook awaited in between.
Step = Union[ModelEvent, Tuple[str, str, Dict[str, Any]], Callable[[], Awaitable[None]]]


class ScriptedChatModel:
    """ChatModel double replaying one script per model iteration."""

    def __init__(self, *turns: Sequence[Step]) -> None:
        self.turns: List[Sequence[Step]] = list(turns)
        self.requests: List[ModelRequest] = []
        self.tool_results: List[str] = []

    async def stream(self, request: ModelRequest) -> AsyncIterator[ModelEvent]:
        self.requests.append(request)
        script = self.turns.pop(0) if self.turns else []
        tools = {t.name: t for t in request.tools}
        for step in script:
            if isinstance(step, tuple):
                _, name, args = step
                yield ToolStartEvent(name=name, input=args)
                self.tool_results.append(await tools[name].invoke(dict(args)))
            elif callable(step):
                await step()
            else:
                yield step
        yield ModelCompleteEvent()


@pytest.fixture
def make_model() -> Callable[..., ScriptedChatModel]:
    return ScriptedChatModel


@pytest.fixture
def todo_store() -> TodoStore:
    return TodoStore()
