from __future__ import annotations

"""Approval resolver.

Applies a human's approve/reject decisions, addressed by index, to the
operations stored on one assistant message.

Rules
-----

- Rejections are applied first. An index may be rejected while it is
  ``analyzed`` or ``analyzedBlocked``; no handler is invoked.
- Approvals are applied in ascending index order. An index may be approved
  only while it is ``analyzed``; it then runs through the manager's single
  execution path and ends ``done`` or ``failed``.
- After each approval, blocked operations whose dependencies are now all
  ``done`` are analyzed again and may become approvable within the same call.
- Indices that are out of range, listed in both sets or not eligible are
  ignored with a warning, so the resolver is safe to call repeatedly with
  duplicate, late or disjoint decision sets.

The resolver only flips state. Persisting the message and deciding whether
to run a follow-up turn is the caller's job.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from ..catalog import OperationCatalog
from ..handlers.base import HandlerContext
from ..handlers.registry import HandlerRegistry
from ..policy.autonomy import AutonomyPolicy
from ..schemas.domain import (
    ChatMode,
    Message,
    Operation,
    OperationStatus,
    OperationSummary,
    TERMINAL_STATUSES,
)
from .errors import PolicyViolation
from .formatting import OutputArchive
from .manager import DEFAULT_MAX_MESSAGE_CHARS, OperationManager

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolutionResult:
    """Counts of what one ``resolve`` call changed."""

    executed: int
    failed: int
    rejected: int
    ignored: int
    unblocked: int
    all_terminal: bool
    summary: OperationSummary

    @property
    def changed(self) -> bool:
        return bool(self.executed or self.failed or self.rejected or self.unblocked)


def _unique_ints(indices: Iterable[int]) -> List[int]:
    seen: List[int] = []
    for i in indices:
        i = int(i)
        if i not in seen:
            seen.append(i)
    return seen


class ApprovalResolver:
    """Apply approve/reject decisions to a stored message's operations."""

    def __init__(
        self,
        *,
        handlers: HandlerRegistry,
        catalog: Optional[OperationCatalog] = None,
        policy: Optional[AutonomyPolicy] = None,
        archive: Optional[OutputArchive] = None,
        max_message_chars: int = DEFAULT_MAX_MESSAGE_CHARS,
    ) -> None:
        self._handlers = handlers
        self._catalog = catalog
        self._policy = policy
        self._archive = archive
        self._max_message_chars = max_message_chars

    async def resolve(
        self,
        message: Message,
        approved: Iterable[int],
        rejected: Iterable[int],
        ctx: HandlerContext,
    ) -> ResolutionResult:
        """
        Apply decisions to ``message.operations`` in place.

        Args:
            message: The stored assistant message carrying the operations.
            approved: Indices to execute.
            rejected: Indices to reject.
            ctx: Handler context for executions and re-analysis.

        Returns:
            A ResolutionResult describing the changes.
        """
        operations: List[Operation] = message.operations if message.operations is not None else []
        manager = OperationManager(
            mode=ChatMode.none,
            handlers=self._handlers,
            catalog=self._catalog,
            policy=self._policy,
            archive=self._archive,
            max_message_chars=self._max_message_chars,
            operations=operations,
        )
        manager.freeze()

        approve_idx = _unique_ints(approved)
        reject_idx = _unique_ints(rejected)
        conflicting = set(approve_idx) & set(reject_idx)
        ignored = 0
        if conflicting:
            logger.warning(
                f"Message {message.created}: indices {sorted(conflicting)} were both approved and rejected; ignoring"
            )
            ignored += 2 * len(conflicting)

        rejected_count = 0
        for idx in reject_idx:
            if idx in conflicting:
                continue
            op = self._lookup(operations, idx, message)
            if op is None:
                ignored += 1
                continue
            try:
                manager.reject(op)
                rejected_count += 1
            except PolicyViolation as e:
                logger.warning(f"Message {message.created}: ignoring rejection of #{idx}: {e}")
                ignored += 1

        executed = failed = unblocked = 0
        for idx in sorted(i for i in approve_idx if i not in conflicting):
            unblocked += await self._unblock(manager, ctx)
            op = self._lookup(operations, idx, message)
            if op is None:
                ignored += 1
                continue
            if op.status != OperationStatus.analyzed:
                logger.warning(
                    f"Message {message.created}: ignoring approval of #{idx} {op.type} in status {op.status.value}"
                )
                ignored += 1
                continue
            await manager.execute(op, ctx)
            if op.status == OperationStatus.done:
                executed += 1
            else:
                failed += 1
        unblocked += await self._unblock(manager, ctx)

        result = ResolutionResult(
            executed=executed,
            failed=failed,
            rejected=rejected_count,
            ignored=ignored,
            unblocked=unblocked,
            all_terminal=all(op.status in TERMINAL_STATUSES for op in operations),
            summary=manager.summary(),
        )
        logger.info(
            f"Resolved message {message.created}: executed={executed} failed={failed} "
            f"rejected={rejected_count} ignored={ignored} unblocked={unblocked}"
        )
        return result

    @staticmethod
    def _lookup(operations: List[Operation], idx: int, message: Message) -> Optional[Operation]:
        if 0 <= idx < len(operations):
            return operations[idx]
        logger.warning(f"Message {message.created}: operation index {idx} is out of range")
        return None

    async def _unblock(self, manager: OperationManager, ctx: HandlerContext) -> int:
        count = 0
        for op in manager.operations:
            if (
                op.status == OperationStatus.analyzed_blocked
                and op.depends_on
                and not manager.pending_dependencies(op)
            ):
                await manager.reanalyze(op, ctx)
                if op.status == OperationStatus.analyzed:
                    count += 1
        return count
