from __future__ import annotations

import asyncio
from typing import Any, List, Optional, Tuple

import pytest

from oploop_ai.agent_core.factory import build_orchestrator
from oploop_ai.agent_core.handlers.builtin import TodoStore
from oploop_ai.agent_core.repos.memory import InMemoryChatData
from oploop_ai.agent_core.runtime import CancellationToken, OrchestratorConfig, TurnRequest, TurnStatus
from oploop_ai.agent_core.schemas.domain import ChatMeta, ChatMode, Message, MessageRole, OperationStatus
from oploop_ai.agent_core.schemas.events import (
    CompleteEvent,
    ErrorEvent,
    OperationsEvent,
    PendingUpdateEvent,
    ReasonEvent,
    RequestTokensEvent,
    ResponseTokensEvent,
    StatusEvent,
    TextPartialEvent,
    TextResetEvent,
    TokensEvent,
    UsageEvent,
)


async def _seeded(content: str = "please help") -> InMemoryChatData:
    data = InMemoryChatData()
    await data.save(lambda msgs: msgs.append(Message(role=MessageRole.user, content=content, created=1000)))
    return data


async def _run(
    model: Any,
    mode: ChatMode,
    data: InMemoryChatData,
    store: TodoStore,
    config: Optional[OrchestratorConfig] = None,
    cancel: Optional[CancellationToken] = None,
) -> Tuple[Any, List[Any]]:
    events: List[Any] = []

    async def emit(event: Any) -> None:
        events.append(event)

    orch = build_orchestrator(model=model, config=config)
    request = TurnRequest(chat=ChatMeta(id="c1", mode=mode), chat_data=data, resources={"todos": store})
    outcome = await orch.run(request, emit, cancel)
    return outcome, events


def _of(events: List[Any], cls: type) -> List[Any]:
    return [e for e in events if isinstance(e, cls)]


@pytest.mark.asyncio
async def test_mode_none_parks_update_for_approval(make_model, todo_store: TodoStore) -> None:
    model = make_model(
        [
            TextPartialEvent(content="Replacing your list. "),
            ("tool", "todos_replace", {"todos": ["a", "b"]}),
            TextPartialEvent(content="Waiting for you."),
        ]
    )
    data = await _seeded()

    outcome, events = await _run(model, ChatMode.none, data, todo_store)

    assert outcome.status == TurnStatus.awaiting_approval
    assert outcome.iterations == 1
    ops_events = _of(events, OperationsEvent)
    assert len(ops_events) == 1
    assert ops_events[0].summary.need_approval == 1
    assert ops_events[0].summary.done == 0
    assert todo_store.list("c1") == []

    stored = await data.get_messages()
    assert [m.role for m in stored] == [MessageRole.user, MessageRole.assistant]
    assistant = stored[1]
    assert assistant.content == "Replacing your list. Waiting for you."
    assert assistant.operations[0].status == OperationStatus.analyzed
    assert assistant.created > stored[0].created
    assert _of(events, StatusEvent)[0].status == "running"
    assert _of(events, StatusEvent)[-1].status == "awaitingApproval"


@pytest.mark.asyncio
async def test_authorized_update_executes_and_loops_once(make_model, todo_store: TodoStore) -> None:
    model = make_model(
        [("tool", "todos_replace", {"todos": ["a"]})],
        [TextPartialEvent(content="All set.")],
    )
    data = await _seeded()

    outcome, events = await _run(model, ChatMode.update, data, todo_store)

    assert outcome.status == TurnStatus.done
    assert outcome.iterations == 2
    assert [t.name for t in todo_store.list("c1")] == ["a"]
    assert len(model.requests) == 2
    follow_up_history = model.requests[1].messages
    assert follow_up_history[-1].role == MessageRole.assistant
    assert "Operation todos_replace completed successfully" in follow_up_history[-1].content

    stored = await data.get_messages()
    assert len(stored) == 3
    assert stored[1].operations[0].status == OperationStatus.done
    assert stored[2].content == "All set."
    assert len(_of(events, CompleteEvent)) == 2


@pytest.mark.asyncio
async def test_follow_up_bound_is_configurable(make_model, todo_store: TodoStore) -> None:
    listing = [("tool", "todos_list", {})]
    model = make_model(listing, listing, listing, listing)
    data = await _seeded()

    outcome, _ = await _run(
        model, ChatMode.none, data, todo_store, config=OrchestratorConfig(max_follow_up_turns=2)
    )
    assert outcome.iterations == 3

    model = make_model(listing, listing)
    outcome, _ = await _run(
        model, ChatMode.none, await _seeded(), todo_store, config=OrchestratorConfig(max_follow_up_turns=0)
    )
    assert outcome.iterations == 1
    assert outcome.status == TurnStatus.done


@pytest.mark.asyncio
async def test_timeout_emits_single_error_and_no_complete(make_model, todo_store: TodoStore) -> None:
    async def stall() -> None:
        await asyncio.sleep(0.5)

    model = make_model([TextPartialEvent(content="partial"), stall, TextPartialEvent(content=" never")])
    data = await _seeded()

    outcome, events = await _run(
        model, ChatMode.none, data, todo_store, config=OrchestratorConfig(timeout_seconds=0.05)
    )

    assert outcome.status == TurnStatus.errored
    errors = _of(events, ErrorEvent)
    assert len(errors) == 1
    assert "timed out" in errors[0].error
    assert _of(events, CompleteEvent) == []
    stored = await data.get_messages()
    assert stored[-1].role == MessageRole.assistant
    assert stored[-1].content == "partial"


@pytest.mark.asyncio
async def test_cancellation_stops_at_next_chunk(make_model, todo_store: TodoStore) -> None:
    token = CancellationToken()

    async def cancel() -> None:
        token.cancel()

    model = make_model([TextPartialEvent(content="first"), cancel, TextPartialEvent(content=" second")])
    data = await _seeded()

    outcome, events = await _run(model, ChatMode.none, data, todo_store, cancel=token)

    assert outcome.status == TurnStatus.cancelled
    assert _of(events, ErrorEvent) == []
    assert _of(events, CompleteEvent) == []
    stored = await data.get_messages()
    assert stored[-1].content == "first"


@pytest.mark.asyncio
async def test_model_failure_is_reported_as_error(make_model, todo_store: TodoStore) -> None:
    async def explode() -> None:
        raise RuntimeError("model down")

    outcome, events = await _run(make_model([explode]), ChatMode.none, await _seeded(), todo_store)

    assert outcome.status == TurnStatus.errored
    assert outcome.error == "model down"
    assert [e.error for e in _of(events, ErrorEvent)] == ["model down"]


class _BrokenChatData(InMemoryChatData):
    """Chat data whose writes start failing once ``broken`` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.broken = False
        self.failed_saves = 0

    async def save(self, mutator):
        if self.broken:
            self.failed_saves += 1
            raise OSError("database is locked")
        return await super().save(mutator)


async def _broken_seeded() -> _BrokenChatData:
    data = _BrokenChatData()
    await data.save(lambda msgs: msgs.append(Message(role=MessageRole.user, content="hi", created=1000)))
    data.broken = True
    return data


@pytest.mark.asyncio
async def test_persistence_failure_is_reported_once(make_model, todo_store: TodoStore) -> None:
    data = await _broken_seeded()

    outcome, events = await _run(make_model([TextPartialEvent(content="hello")]), ChatMode.none, data, todo_store)

    assert outcome.status == TurnStatus.errored
    assert outcome.error == "database is locked"
    assert [e.error for e in _of(events, ErrorEvent)] == ["database is locked"]
    assert _of(events, CompleteEvent) == []
    assert data.failed_saves == 2


@pytest.mark.asyncio
async def test_cancellation_survives_persistence_failure(make_model, todo_store: TodoStore) -> None:
    token = CancellationToken()

    async def cancel() -> None:
        token.cancel()

    data = await _broken_seeded()
    model = make_model([TextPartialEvent(content="partial"), cancel, TextPartialEvent(content=" more")])

    outcome, events = await _run(model, ChatMode.none, data, todo_store, cancel=token)

    assert outcome.status == TurnStatus.cancelled
    assert _of(events, ErrorEvent) == []
    assert data.failed_saves == 1


@pytest.mark.asyncio
async def test_timeout_survives_persistence_failure(make_model, todo_store: TodoStore) -> None:
    async def stall() -> None:
        await asyncio.sleep(1)

    data = await _broken_seeded()
    model = make_model([TextPartialEvent(content="partial"), stall])

    outcome, events = await _run(
        model, ChatMode.none, data, todo_store, config=OrchestratorConfig(timeout_seconds=0.05)
    )

    assert outcome.status == TurnStatus.errored
    assert len(_of(events, ErrorEvent)) == 1
    assert "timed out" in outcome.error


@pytest.mark.asyncio
async def test_token_accounting(make_model, todo_store: TodoStore) -> None:
    model = make_model(
        [
            TextPartialEvent(content="abcdabcd"),
            TextResetEvent(),
            ReasonEvent(content="r" * 8),
            ("tool", "todos_list", {}),
            TextPartialEvent(content="xyz"),
            UsageEvent(input_tokens=10, output_tokens=7, reasoning_tokens=3),
            ResponseTokensEvent(tokens=9),
        ]
    )
    data = await _seeded()

    outcome, events = await _run(
        model, ChatMode.none, data, todo_store, config=OrchestratorConfig(max_follow_up_turns=0)
    )

    counts = [(t.output, t.reasoning, t.discarded) for t in _of(events, TokensEvent)]
    assert counts == [
        (2, 0, 0),
        (0, 0, 2),
        (0, 2, 2),
        (0, 2, 5),
        (1, 2, 5),
        (7, 3, 0),
        (9, 3, 0),
        (9, 3, 0),
    ]
    assert outcome.message.tokens == 9


@pytest.mark.asyncio
async def test_request_tokens_update_last_user_message(make_model, todo_store: TodoStore) -> None:
    model = make_model([RequestTokensEvent(tokens=42), TextPartialEvent(content="hi")])
    data = await _seeded()

    await _run(model, ChatMode.none, data, todo_store)

    stored = await data.get_messages()
    assert stored[0].role == MessageRole.user
    assert stored[0].tokens == 42


@pytest.mark.asyncio
async def test_pending_updates_carry_live_operations(make_model, todo_store: TodoStore) -> None:
    model = make_model([("tool", "todos_add", {"name": "x"}), TextPartialEvent(content="ok")])
    _, events = await _run(model, ChatMode.none, await _seeded(), todo_store)

    pending = _of(events, PendingUpdateEvent)
    assert pending[-1].message.content == "ok"
    assert pending[-1].message.operations[0].type == "todos_add"


@pytest.mark.asyncio
async def test_system_prompt_and_tools_reach_the_model(make_model, todo_store: TodoStore) -> None:
    model = make_model([TextPartialEvent(content="hello")])
    await _run(
        model, ChatMode.none, await _seeded(), todo_store, config=OrchestratorConfig(system_prompt="be brief")
    )

    request = model.requests[0]
    assert request.system_prompt == "be brief"
    assert {t.name for t in request.tools} >= {"todos_list", "todos_add", "todos_clear"}
    assert request.messages[-1].content == "please help"


@pytest.mark.asyncio
async def test_stream_events_yields_turn_events(make_model, todo_store: TodoStore) -> None:
    orch = build_orchestrator(model=make_model([TextPartialEvent(content="streamed")]))
    request = TurnRequest(chat=ChatMeta(id="c1"), chat_data=await _seeded(), resources={"todos": todo_store})

    events = [e async for e in orch.stream_events(request)]

    assert isinstance(events[0], StatusEvent)
    assert any(isinstance(e, CompleteEvent) and e.message.content == "streamed" for e in events)
    assert events[-1].status == "done"
