from __future__ import annotations

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from oploop_ai.agent_core.repos.sql import SqlChatRepository, create_all, create_sessionmaker
from oploop_ai.agent_core.schemas.domain import (
    ChatMeta,
    ChatMode,
    Message,
    MessageRole,
    Operation,
    OperationRiskKind,
    OperationStatus,
)


@pytest_asyncio.fixture
async def repo():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_all(engine)
    yield SqlChatRepository(create_sessionmaker(engine))
    await engine.dispose()


@pytest.mark.asyncio
async def test_chat_roundtrip(repo: SqlChatRepository) -> None:
    chat = ChatMeta(title="work", mode=ChatMode.create, model="test")
    await repo.create(chat)

    got = await repo.get(chat.id)
    assert got is not None
    assert (got.title, got.mode, got.model) == ("work", ChatMode.create, "test")

    await repo.update(got.model_copy(update={"mode": ChatMode.delete}))
    assert (await repo.get(chat.id)).mode == ChatMode.delete
    assert await repo.get("missing") is None
    assert [c.id for c in await repo.list()] == [chat.id]


@pytest.mark.asyncio
async def test_messages_upsert_by_created_and_keep_operations(repo: SqlChatRepository) -> None:
    data = repo.chat_data("c1")
    op = Operation(type="todos_add", input={"name": "x"}, kind=OperationRiskKind.create, status=OperationStatus.analyzed)

    await data.save(lambda msgs: msgs.append(Message(role=MessageRole.user, content="hi", created=1)))
    await data.save(
        lambda msgs: msgs.append(Message(role=MessageRole.assistant, content="a", created=2, operations=[op]))
    )

    def approve(msgs):
        msgs[1].operations[0].status = OperationStatus.done
        msgs[1].content = "b"

    stored = await data.save(approve)
    assert [m.created for m in stored] == [1, 2]

    reloaded = await data.get_messages()
    assert reloaded[1].content == "b"
    assert reloaded[1].operations[0].status == OperationStatus.done
    assert reloaded[1].operations[0].input == {"name": "x"}
    assert reloaded[0].operations is None


@pytest.mark.asyncio
async def test_messages_removed_by_mutator_are_deleted(repo: SqlChatRepository) -> None:
    data = repo.chat_data("c1")
    await data.save(lambda msgs: msgs.extend(Message(role=MessageRole.user, created=i) for i in (1, 2, 3)))
    await data.save(lambda msgs: [m for m in msgs if m.created != 2])

    assert [m.created for m in await data.get_messages()] == [1, 3]
    assert await repo.chat_data("other").get_messages() == []
