from __future__ import annotations

import pytest
from pydantic import TypeAdapter, ValidationError

from oploop_ai.agent_core.schemas.domain import (
    AWAITING_APPROVAL_STATUSES,
    TERMINAL_STATUSES,
    Message,
    MessageRole,
    Operation,
    OperationRiskKind,
    OperationStatus,
    OperationSummary,
)
from oploop_ai.agent_core.schemas.events import ModelEvent, OrchestratorEvent, TextPartialEvent, TokensEvent


def test_operation_defaults_to_analyzing() -> None:
    op = Operation(type="todos_add", input={"name": "x"}, kind=OperationRiskKind.create)
    assert op.status == OperationStatus.analyzing
    assert op.depends_on == []
    assert not op.is_terminal


def test_terminal_and_awaiting_sets_are_disjoint() -> None:
    assert TERMINAL_STATUSES == {OperationStatus.done, OperationStatus.failed, OperationStatus.rejected}
    assert AWAITING_APPROVAL_STATUSES == {OperationStatus.analyzed, OperationStatus.analyzed_blocked}
    assert not TERMINAL_STATUSES & AWAITING_APPROVAL_STATUSES


def test_analyzed_blocked_serializes_camel_case() -> None:
    op = Operation(type="x", kind=OperationRiskKind.read, status=OperationStatus.analyzed_blocked)
    assert op.model_dump(mode="json")["status"] == "analyzedBlocked"


def test_extra_fields_are_forbidden() -> None:
    with pytest.raises(ValidationError):
        Message.model_validate({"role": "user", "content": "hi", "bogus": 1})


def test_summary_alias_and_text() -> None:
    s = OperationSummary(total=3, done=1, need_approval=1, blocked=1)
    assert s.model_dump(by_alias=True)["needApproval"] == 1
    assert s.text == "3 operations (1 done, 1 need approval, 1 blocked, 0 failed, 0 rejected)"
    assert OperationSummary(total=1).text.startswith("1 operation (")


def test_message_roundtrip_keeps_operations() -> None:
    msg = Message(
        role=MessageRole.assistant,
        created=10,
        operations=[Operation(type="todos_list", kind=OperationRiskKind.local, status=OperationStatus.done)],
    )
    restored = Message.model_validate_json(msg.model_dump_json())
    assert restored == msg


def test_event_unions_discriminate_on_type() -> None:
    model_event = TypeAdapter(ModelEvent).validate_python({"type": "textPartial", "content": "he"})
    assert isinstance(model_event, TextPartialEvent)

    orch_event = TypeAdapter(OrchestratorEvent).validate_python({"type": "tokens", "output": 3})
    assert isinstance(orch_event, TokensEvent)
    assert orch_event.reasoning == 0
