from __future__ import annotations

"""Built-in planner handlers.

The planner toolset keeps a per-chat todo list. The handlers resolve their
store from ``ctx.resources["todos"]`` so deployments can swap the in-memory
``TodoStore`` for a persistent one with the same methods.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import Field

from ..schemas.base import BaseSchema
from .base import HandlerContext, HandlerResult, OperationAnalysis


class TodoItem(BaseSchema):
    id: str = Field(default_factory=lambda: uuid4().hex[:8])
    name: str
    done: bool = False


class TodoStore:
    """In-memory todo lists keyed by chat id."""

    def __init__(self) -> None:
        self._todos: Dict[str, List[TodoItem]] = {}

    def list(self, chat_id: str) -> List[TodoItem]:
        return list(self._todos.get(chat_id, []))

    def get(self, chat_id: str, todo_id: str) -> Optional[TodoItem]:
        for todo in self._todos.get(chat_id, []):
            if todo.id == todo_id:
                return todo
        return None

    def add(self, chat_id: str, name: str) -> TodoItem:
        todo = TodoItem(name=name)
        self._todos.setdefault(chat_id, []).append(todo)
        return todo

    def mark_done(self, chat_id: str, todo_id: str) -> bool:
        todo = self.get(chat_id, todo_id)
        if todo is None:
            return False
        todo.done = True
        return True

    def remove(self, chat_id: str, todo_id: str) -> bool:
        todos = self._todos.get(chat_id, [])
        kept = [t for t in todos if t.id != todo_id]
        self._todos[chat_id] = kept
        return len(kept) != len(todos)

    def replace(self, chat_id: str, names: List[str]) -> List[TodoItem]:
        self._todos[chat_id] = [TodoItem(name=n) for n in names]
        return self.list(chat_id)

    def clear(self, chat_id: str) -> int:
        return len(self._todos.pop(chat_id, []))


def _store(ctx: HandlerContext) -> Optional[TodoStore]:
    return ctx.resources.get("todos")


_NOT_CONFIGURED = HandlerResult(error="todos store not configured")


@dataclass(frozen=True)
class TodosListHandler:
    kind: str = "todos_list"

    async def analyze(self, ctx: HandlerContext, *, input: Dict[str, Any]) -> OperationAnalysis:
        store = _store(ctx)
        count = len(store.list(ctx.chat.id)) if store is not None else 0
        return OperationAnalysis(f"This will list {count} todos.", doable=store is not None)

    async def execute(self, ctx: HandlerContext, *, input: Dict[str, Any]) -> HandlerResult:
        store = _store(ctx)
        if store is None:
            return _NOT_CONFIGURED
        todos = store.list(ctx.chat.id)
        return HandlerResult(output={"todos": [t.model_dump() for t in todos]})


@dataclass(frozen=True)
class TodosGetHandler:
    kind: str = "todos_get"

    async def execute(self, ctx: HandlerContext, *, input: Dict[str, Any]) -> HandlerResult:
        store = _store(ctx)
        if store is None:
            return _NOT_CONFIGURED
        todo = store.get(ctx.chat.id, str(input["id"]))
        return HandlerResult(output={"todo": todo.model_dump() if todo is not None else None})


@dataclass(frozen=True)
class TodosAddHandler:
    kind: str = "todos_add"

    async def analyze(self, ctx: HandlerContext, *, input: Dict[str, Any]) -> OperationAnalysis:
        return OperationAnalysis(f'This will add a new todo: "{input["name"]}"', doable=_store(ctx) is not None)

    async def execute(self, ctx: HandlerContext, *, input: Dict[str, Any]) -> HandlerResult:
        store = _store(ctx)
        if store is None:
            return _NOT_CONFIGURED
        todo = store.add(ctx.chat.id, str(input["name"]))
        return HandlerResult(output={"id": todo.id, "name": todo.name})


@dataclass(frozen=True)
class TodosDoneHandler:
    kind: str = "todos_done"

    async def analyze(self, ctx: HandlerContext, *, input: Dict[str, Any]) -> OperationAnalysis:
        store = _store(ctx)
        todo = store.get(ctx.chat.id, str(input["id"])) if store is not None else None
        if todo is None:
            return OperationAnalysis(f'This would fail - todo with id "{input["id"]}" not found.', doable=False)
        return OperationAnalysis(f'This will mark todo "{todo.name}" as done.')

    async def execute(self, ctx: HandlerContext, *, input: Dict[str, Any]) -> HandlerResult:
        store = _store(ctx)
        if store is None:
            return _NOT_CONFIGURED
        if not store.mark_done(ctx.chat.id, str(input["id"])):
            return HandlerResult(error=f"Todo not found: {input['id']}")
        return HandlerResult(output={"id": input["id"], "done": True})


@dataclass(frozen=True)
class TodosRemoveHandler:
    kind: str = "todos_remove"

    async def analyze(self, ctx: HandlerContext, *, input: Dict[str, Any]) -> OperationAnalysis:
        store = _store(ctx)
        todo = store.get(ctx.chat.id, str(input["id"])) if store is not None else None
        if todo is None:
            return OperationAnalysis(f'This would fail - todo with id "{input["id"]}" not found.', doable=False)
        return OperationAnalysis(f'This will remove todo "{todo.name}".')

    async def execute(self, ctx: HandlerContext, *, input: Dict[str, Any]) -> HandlerResult:
        store = _store(ctx)
        if store is None:
            return _NOT_CONFIGURED
        if not store.remove(ctx.chat.id, str(input["id"])):
            return HandlerResult(error=f"Todo not found: {input['id']}")
        return HandlerResult(output={"id": input["id"], "removed": True})


@dataclass(frozen=True)
class TodosReplaceHandler:
    kind: str = "todos_replace"

    async def analyze(self, ctx: HandlerContext, *, input: Dict[str, Any]) -> OperationAnalysis:
        store = _store(ctx)
        current = len(store.list(ctx.chat.id)) if store is not None else 0
        return OperationAnalysis(
            f"This will replace {current} todos with {len(input['todos'])} new todos.",
            doable=store is not None,
        )

    async def execute(self, ctx: HandlerContext, *, input: Dict[str, Any]) -> HandlerResult:
        store = _store(ctx)
        if store is None:
            return _NOT_CONFIGURED
        todos = store.replace(ctx.chat.id, [str(n) for n in input["todos"]])
        return HandlerResult(output={"todos": [t.model_dump() for t in todos]})


@dataclass(frozen=True)
class TodosClearHandler:
    kind: str = "todos_clear"

    async def analyze(self, ctx: HandlerContext, *, input: Dict[str, Any]) -> OperationAnalysis:
        store = _store(ctx)
        todos = store.list(ctx.chat.id) if store is not None else []
        done = sum(1 for t in todos if t.done)
        return OperationAnalysis(
            f"This will clear {len(todos)} todos ({done} done, {len(todos) - done} not done).",
            doable=store is not None,
        )

    async def execute(self, ctx: HandlerContext, *, input: Dict[str, Any]) -> HandlerResult:
        store = _store(ctx)
        if store is None:
            return _NOT_CONFIGURED
        cleared = store.clear(ctx.chat.id)
        return HandlerResult(output={"cleared": cleared}, message=f"Cleared {cleared} todos.")


PLANNER_HANDLERS = (
    TodosListHandler,
    TodosGetHandler,
    TodosAddHandler,
    TodosDoneHandler,
    TodosRemoveHandler,
    TodosReplaceHandler,
    TodosClearHandler,
)
