"""Human readable operation summaries.

Every state change rewrites ``Operation.message``: a headline describing the
outcome followed by the input and either the analysis or the output rendered
as JSON. Summaries longer than the configured limit are truncated; the full
text is kept in an ``OutputArchive`` under a key mentioned in the truncated
message so it can be fetched later.
"""

from __future__ import annotations

import json
import logging
from collections import OrderedDict
from typing import Any, Optional
from uuid import uuid4

from ..schemas.domain import Operation, OperationStatus

logger = logging.getLogger(__name__)

DEFAULT_ARCHIVE_ENTRIES = 1000


class OutputArchive:
    """In-memory store for full operation summaries that were truncated.

    Holds at most ``max_entries`` texts; storing beyond that evicts the least
    recently used entry. Entries do not survive a process restart.
    """

    def __init__(self, max_entries: int = DEFAULT_ARCHIVE_ENTRIES) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._max_entries = max_entries
        self._entries: OrderedDict[str, str] = OrderedDict()

    def store(self, text: str) -> str:
        key = f"op-{uuid4().hex[:12]}"
        self._entries[key] = text
        while len(self._entries) > self._max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Evicted archived output {evicted}")
        return key

    def get(self, key: str) -> Optional[str]:
        text = self._entries.get(key)
        if text is not None:
            self._entries.move_to_end(key)
        return text

    def __len__(self) -> int:
        return len(self._entries)


def _json_block(value: Any) -> str:
    return "```json\n" + json.dumps(value, indent=2, default=str, ensure_ascii=False) + "\n```"


def headline(op: Operation) -> str:
    if op.status == OperationStatus.failed:
        return f"Operation {op.type} failed: {op.error}"
    if op.status == OperationStatus.done:
        return f"Operation {op.type} completed successfully:"
    if op.status == OperationStatus.analyzed:
        return f"Operation {op.type} requires approval:"
    if op.status == OperationStatus.rejected:
        return f"Operation {op.type} was rejected by the user."
    if op.status == OperationStatus.analyzed_blocked:
        return f"Operation {op.type} cannot be performed:"
    return f"Operation {op.type} is {op.status.value}."


def render_operation(op: Operation, *, title: Optional[str] = None) -> str:
    """Render the full summary of ``op``; ``title`` replaces the default headline."""
    parts = [title or headline(op)]
    if op.input:
        parts.append("Input:\n" + _json_block(op.input))
    if op.analysis and op.output is None:
        parts.append("Analysis:\n" + op.analysis)
    if op.output is not None:
        parts.append("Output:\n" + _json_block(op.output))
    return "\n\n".join(parts)


def truncate_message(text: str, *, max_chars: int, archive: Optional[OutputArchive]) -> str:
    if max_chars <= 0 or len(text) <= max_chars:
        return text
    if archive is None:
        return text[:max_chars] + "\n\n... (truncated)"
    key = archive.store(text)
    return text[:max_chars] + f"\n\n... (truncated, full text stored under key {key})"
