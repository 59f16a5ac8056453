from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

import pytest

from oploop_ai.agent_core.factory import build_default_registry
from oploop_ai.agent_core.handlers import HandlerContext, HandlerRegistry, HandlerResult


@dataclass(frozen=True)
class _Echo:
    kind: str = "echo"
    tag: str = "a"

    async def execute(self, ctx: HandlerContext, *, input: Dict[str, Any]) -> HandlerResult:
        return HandlerResult(output={"tag": self.tag, **input})


def test_register_get_has_and_overwrite() -> None:
    reg = HandlerRegistry()
    assert not reg.has("echo")
    reg.register(_Echo())
    reg.register(_Echo(tag="b"))
    assert reg.has("echo")
    assert reg.get("echo").tag == "b"
    assert reg.kinds() == ["echo"]


def test_get_missing_raises_key_error() -> None:
    with pytest.raises(KeyError):
        HandlerRegistry().get("nope")


def test_default_registry_ships_planner_handlers() -> None:
    reg = build_default_registry()
    assert reg.kinds() == [
        "todos_list",
        "todos_get",
        "todos_add",
        "todos_done",
        "todos_remove",
        "todos_replace",
        "todos_clear",
    ]
