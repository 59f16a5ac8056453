from __future__ import annotations

from typing import Dict, Set, Tuple

import pytest

from oploop_ai.agent_core.catalog import DEFAULT_CATALOG, OperationCatalog, OperationSpec, classify
from oploop_ai.agent_core.handlers.base import HandlerContext
from oploop_ai.agent_core.schemas.domain import ChatMeta, ChatMode, OperationRiskKind as R


class _Records:
    def __init__(self, records: Dict[str, Set[str]]) -> None:
        self._records = records

    def exists(self, type_name: str, record_id: str) -> bool:
        return record_id in self._records.get(type_name, set())

    def count(self, type_name: str) -> int:
        return len(self._records.get(type_name, set()))


def _ctx(records: _Records) -> HandlerContext:
    return HandlerContext(chat=ChatMeta(), mode=ChatMode.none, resources={"data": records})


@pytest.mark.parametrize(
    "kind,risk",
    [
        ("todos_list", R.local),
        ("todos_add", R.create),
        ("todos_done", R.update),
        ("todos_clear", R.delete),
        ("file_search", R.local),
        ("file_read", R.read),
        ("file_move", R.update),
        ("web_search", R.read),
        ("knowledge_delete", R.delete),
        ("ask", R.local),
    ],
)
def test_static_risks(kind: str, risk: R) -> None:
    assert classify(kind, {}) == risk


def test_unknown_kind_classifies_as_delete() -> None:
    assert classify("launch_rockets", {}) == R.delete


def test_text_search_depends_on_image_transcription() -> None:
    assert classify("text_search", {"glob": "*.md"}) == R.local
    assert classify("text_search", {"glob": "*.png", "transcribe_images": True}) == R.read


def test_type_delete_is_update_only_for_empty_types() -> None:
    ctx = _ctx(_Records({"people": {"1"}}))
    assert classify("type_delete", {"name": "empty"}, ctx) == R.update
    assert classify("type_delete", {"name": "people"}, ctx) == R.delete
    # without a record store the static risk applies
    assert classify("type_delete", {"name": "empty"}) == R.delete


def test_data_delete_of_missing_record_is_local() -> None:
    ctx = _ctx(_Records({"people": {"1"}}))
    assert classify("data_delete", {"name": "people", "id": "1"}, ctx) == R.delete
    assert classify("data_delete", {"name": "people", "id": "2"}, ctx) == R.local


def test_failing_risk_function_falls_back_to_static_risk() -> None:
    def boom(input, ctx) -> R:
        raise RuntimeError("store offline")

    catalog = OperationCatalog([OperationSpec("flaky_kind", R.update, "flaky_kind", risk_fn=boom)])
    assert classify("flaky_kind", {}, catalog=catalog) == R.update


def test_empty_catalog_is_not_replaced_by_default() -> None:
    assert classify("todos_list", {}, catalog=OperationCatalog([])) == R.delete


def test_duplicate_kinds_are_rejected() -> None:
    spec = OperationSpec("dup", R.read, "d")
    with pytest.raises(ValueError):
        OperationCatalog([spec, spec])
    with pytest.raises(ValueError):
        DEFAULT_CATALOG.extended(OperationSpec("todos_list", R.read, "again"))


def test_extended_can_replace_and_leaves_original_untouched() -> None:
    custom = DEFAULT_CATALOG.extended(OperationSpec("todos_list", R.read, "audited"), replace=True)
    assert custom.classify("todos_list", {}) == R.read
    assert DEFAULT_CATALOG.classify("todos_list", {}) == R.local


def test_every_default_kind_has_a_description() -> None:
    kinds: Tuple[str, ...] = tuple(DEFAULT_CATALOG)
    assert len(kinds) == len(set(kinds))
    assert all(DEFAULT_CATALOG[k].description for k in kinds)
