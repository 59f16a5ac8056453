from __future__ import annotations

import pytest

from oploop_ai.agent_core.operations.formatting import OutputArchive, headline, render_operation, truncate_message
from oploop_ai.agent_core.schemas.domain import Operation, OperationRiskKind, OperationStatus


def _op(status: OperationStatus, **kw) -> Operation:
    return Operation(type="todos_add", input={"name": "x"}, kind=OperationRiskKind.create, status=status, **kw)


def test_headlines_per_status() -> None:
    assert headline(_op(OperationStatus.done)) == "Operation todos_add completed successfully:"
    assert headline(_op(OperationStatus.analyzed)) == "Operation todos_add requires approval:"
    assert headline(_op(OperationStatus.analyzed_blocked)) == "Operation todos_add cannot be performed:"
    assert headline(_op(OperationStatus.rejected)) == "Operation todos_add was rejected by the user."
    assert headline(_op(OperationStatus.failed, error="boom")) == "Operation todos_add failed: boom"


def test_render_shows_analysis_until_output_exists() -> None:
    pending = render_operation(_op(OperationStatus.analyzed, analysis="This will add a new todo"))
    assert "Input:\n```json" in pending
    assert "Analysis:\nThis will add a new todo" in pending

    done = render_operation(_op(OperationStatus.done, analysis="old", output={"id": "1"}))
    assert "Analysis:" not in done
    assert '"id": "1"' in done


def test_title_replaces_headline() -> None:
    text = render_operation(_op(OperationStatus.done, output={}), title="Cleared 2 todos.")
    assert text.startswith("Cleared 2 todos.")


def test_truncate_stores_full_text_in_archive() -> None:
    archive = OutputArchive()
    text = "a" * 50
    out = truncate_message(text, max_chars=10, archive=archive)
    assert out.startswith("a" * 10)
    key = out.rsplit("key ", 1)[1].rstrip(")")
    assert archive.get(key) == text
    assert len(archive) == 1


def test_truncate_leaves_short_text_alone() -> None:
    assert truncate_message("short", max_chars=10, archive=None) == "short"
    assert truncate_message("long text", max_chars=0, archive=None) == "long text"


def test_archive_evicts_least_recently_used() -> None:
    archive = OutputArchive(max_entries=2)
    first = archive.store("one")
    second = archive.store("two")
    assert archive.get(first) == "one"

    third = archive.store("three")

    assert len(archive) == 2
    assert archive.get(second) is None
    assert archive.get(first) == "one"
    assert archive.get(third) == "three"


def test_archive_needs_room_for_one_entry() -> None:
    with pytest.raises(ValueError):
        OutputArchive(max_entries=0)
