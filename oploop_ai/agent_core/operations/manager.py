from __future__ import annotations

"""Operation manager.

``OperationManager`` holds the operations of one turn and drives each of them
through its lifecycle::

    analyzing -> doing -> done | failed                    (authorized)
    analyzing -> analyzed | analyzedBlocked                (needs approval)
    analyzed -> doing -> done | failed                     (approved later)
    analyzed | analyzedBlocked -> rejected                 (rejected later)

Single execution
----------------

``execute`` moves an operation to ``doing`` synchronously, before the first
await, and only from ``analyzing`` or ``analyzed``. A second attempt on the
same operation finds it ``doing`` or terminal and is ignored with a warning,
so the status value itself acts as the mutex and no handler ever runs twice.

Classification happens exactly once, in ``handle``, before the policy sees
the operation; approval never re-derives the risk.

Failures stay local: a validation error, a handler error result or a handler
exception marks that one operation ``failed`` and ``handle`` still returns
normally.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError as PydanticValidationError

from ..catalog import DEFAULT_CATALOG, OperationCatalog
from ..handlers.base import HandlerContext, HandlerResult, OperationAnalysis
from ..handlers.registry import HandlerRegistry
from ..policy.autonomy import AutonomyPolicy
from ..schemas.domain import (
    AWAITING_APPROVAL_STATUSES,
    ChatMode,
    Operation,
    OperationRequest,
    OperationStatus,
    OperationSummary,
    TERMINAL_STATUSES,
    now_ms,
)
from .errors import HandlerError, OperationsFrozenError, PolicyViolation, ValidationError
from .formatting import OutputArchive, render_operation, truncate_message

logger = logging.getLogger(__name__)

DEFAULT_MAX_MESSAGE_CHARS = 8000

_EXECUTABLE = frozenset({OperationStatus.analyzing, OperationStatus.analyzed})


def summarize(operations: Sequence[Operation]) -> OperationSummary:
    """Count ``operations`` by lifecycle outcome."""
    by_status: Dict[OperationStatus, int] = {}
    for op in operations:
        by_status[op.status] = by_status.get(op.status, 0) + 1
    return OperationSummary(
        total=len(operations),
        done=by_status.get(OperationStatus.done, 0),
        need_approval=by_status.get(OperationStatus.analyzed, 0),
        blocked=by_status.get(OperationStatus.analyzed_blocked, 0),
        errors=by_status.get(OperationStatus.failed, 0),
        rejected=by_status.get(OperationStatus.rejected, 0),
    )


def _describe_validation_error(exc: PydanticValidationError) -> str:
    problems = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "input"
        problems.append(f"{loc}: {err.get('msg')}")
    return "invalid input: " + "; ".join(problems)


class OperationManager:
    """Per-turn holder and state machine driver for operations.

    The manager is also used outside a turn by the approval resolver, which
    wraps a stored message's operations (``operations=``) and freezes the
    manager immediately so nothing new can be proposed.
    """

    def __init__(
        self,
        *,
        mode: ChatMode,
        handlers: HandlerRegistry,
        catalog: Optional[OperationCatalog] = None,
        policy: Optional[AutonomyPolicy] = None,
        archive: Optional[OutputArchive] = None,
        max_message_chars: int = DEFAULT_MAX_MESSAGE_CHARS,
        operations: Optional[List[Operation]] = None,
    ) -> None:
        """
        Initialize the OperationManager.

        Args:
            mode: The chat's autonomy mode.
            handlers: Registry resolving operation kinds to handlers.
            catalog: Operation catalog used for classification and validation.
            policy: Autonomy policy deciding auto-execution.
            archive: Store for full summaries that get truncated.
            max_message_chars: Maximum length of ``Operation.message``.
            operations: Existing list to manage in place (approval path).
        """
        self._mode = ChatMode(mode)
        self._handlers = handlers
        self._catalog = catalog if catalog is not None else DEFAULT_CATALOG
        self._policy = policy or AutonomyPolicy()
        self._archive = archive
        self._max_message_chars = max_message_chars
        self.operations: List[Operation] = operations if operations is not None else []
        self._frozen = False

    @property
    def mode(self) -> ChatMode:
        return self._mode

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Stop accepting new operations. Existing ones may still change state."""
        self._frozen = True

    async def handle(
        self,
        request: Union[OperationRequest, Mapping[str, Any]],
        ctx: HandlerContext,
    ) -> Operation:
        """
        Classify, decide and, when authorized, execute a proposed operation.

        Args:
            request: The raw proposal (``type``, ``input``, optional ``depends_on``).
            ctx: Handler context of the current turn.

        Returns:
            The appended Operation. It is the live record and keeps changing
            state if it is later approved or rejected.

        Raises:
            OperationsFrozenError: If the manager was frozen.
        """
        if self._frozen:
            raise OperationsFrozenError("operations of this turn are frozen")

        try:
            req = request if isinstance(request, OperationRequest) else OperationRequest.model_validate(request)
        except PydanticValidationError as e:
            return self._record_malformed(request, e, ctx)

        risk = self._catalog.classify(req.type, req.input, ctx)
        op = Operation(type=req.type, input=dict(req.input), kind=risk, depends_on=list(req.depends_on))
        self.operations.append(op)
        index = len(self.operations) - 1

        try:
            op.input = self._validate(op, index)
        except ValidationError as e:
            op.error = str(e)
            op.status = OperationStatus.failed
            self._update_message(op)
            logger.info(f"Operation #{index} {op.type} rejected by validation: {e}")
            return op

        decision = self._policy.decide(self._mode, risk)
        waiting_on = self.pending_dependencies(op)
        logger.debug(
            f"Operation #{index} {op.type}: risk={risk.value} mode={self._mode.value} "
            f"auto={decision.auto_execute} waiting_on={waiting_on}"
        )
        if decision.auto_execute and not waiting_on:
            await self.execute(op, ctx)
        else:
            await self.analyze(op, ctx)
        return op

    async def execute(self, op: Operation, ctx: HandlerContext) -> Operation:
        """
        Run the handler for ``op`` exactly once.

        Operations that are not ``analyzing`` or ``analyzed`` are left
        untouched and a warning is logged.
        """
        try:
            self._begin(op)
        except PolicyViolation as e:
            logger.warning(str(e))
            return op

        title: Optional[str] = None
        try:
            result = await self._invoke(op, ctx)
            op.output = result.output
            op.status = OperationStatus.done
            title = result.message
        except HandlerError as e:
            op.error = str(e)
            op.status = OperationStatus.failed
            logger.info(f"Operation {op.type} failed: {e}")
        except Exception as e:
            op.error = str(e) or e.__class__.__name__
            op.status = OperationStatus.failed
            logger.warning(f"Operation {op.type} raised: {op.error}", exc_info=True)
        finally:
            op.end = now_ms()
            self._update_message(op, title=title)
        return op

    async def analyze(self, op: Operation, ctx: HandlerContext) -> Operation:
        """Preview ``op`` and park it as ``analyzed`` or ``analyzedBlocked``."""
        if op.status != OperationStatus.analyzing:
            logger.warning(f"Operation {op.type} cannot be analyzed in status {op.status.value}")
            return op

        op.start = now_ms()
        try:
            preview = await self._preview(op, ctx)
        except Exception as e:
            op.error = str(e) or e.__class__.__name__
            op.status = OperationStatus.failed
            logger.warning(f"Analysis of operation {op.type} raised: {op.error}", exc_info=True)
        else:
            waiting_on = self.pending_dependencies(op)
            if waiting_on:
                refs = ", ".join(f"#{i}" for i in waiting_on)
                op.analysis = f"{preview.analysis}\nWaiting on operation(s) {refs}."
                op.status = OperationStatus.analyzed_blocked
            else:
                op.analysis = preview.analysis
                op.status = OperationStatus.analyzed if preview.doable else OperationStatus.analyzed_blocked
        finally:
            op.end = now_ms()
            self._update_message(op)
        return op

    async def reanalyze(self, op: Operation, ctx: HandlerContext) -> Operation:
        """Analyze a blocked operation again, e.g. once its dependencies are done."""
        if op.status != OperationStatus.analyzed_blocked:
            logger.warning(f"Operation {op.type} is not blocked (status {op.status.value}); not re-analyzing")
            return op
        op.status = OperationStatus.analyzing
        op.analysis = None
        return await self.analyze(op, ctx)

    def reject(self, op: Operation) -> Operation:
        """
        Mark a pending operation as rejected without invoking any handler.

        Raises:
            PolicyViolation: If the operation is not awaiting approval.
        """
        if op.status not in AWAITING_APPROVAL_STATUSES:
            raise PolicyViolation(f"Operation {op.type} cannot be rejected in status {op.status.value}")
        op.status = OperationStatus.rejected
        op.output = None
        op.end = now_ms()
        self._update_message(op)
        return op

    def abandon(self, reason: str) -> None:
        """Freeze and fail every operation still ``doing`` (turn interrupted)."""
        self.freeze()
        for op in self.operations:
            if op.status == OperationStatus.doing:
                op.status = OperationStatus.failed
                op.error = reason
                op.end = now_ms()
                self._update_message(op)

    def pending_dependencies(self, op: Operation) -> List[int]:
        """Indices listed in ``op.depends_on`` whose operation is not ``done`` yet."""
        return [
            i
            for i in op.depends_on
            if 0 <= i < len(self.operations) and self.operations[i].status != OperationStatus.done
        ]

    def requires_approval(self) -> bool:
        return any(op.status in AWAITING_APPROVAL_STATUSES for op in self.operations)

    def all_concluded(self) -> bool:
        return all(op.status in TERMINAL_STATUSES for op in self.operations)

    def summary(self) -> OperationSummary:
        return summarize(self.operations)

    def _record_malformed(self, request: Any, exc: PydanticValidationError, ctx: HandlerContext) -> Operation:
        """Append a ``failed`` operation for a request that is not even well-formed."""
        raw = request if isinstance(request, Mapping) else {}
        kind = raw.get("type") if isinstance(raw.get("type"), str) and raw.get("type") else "unknown"
        raw_input = raw.get("input")
        op_input = dict(raw_input) if isinstance(raw_input, Mapping) else {}
        op = Operation(
            type=kind,
            input=op_input,
            kind=self._catalog.classify(kind, op_input, ctx),
            status=OperationStatus.failed,
            error=_describe_validation_error(exc),
        )
        self.operations.append(op)
        self._update_message(op)
        logger.info(f"Operation #{len(self.operations) - 1} {kind} rejected as malformed: {op.error}")
        return op

    def _begin(self, op: Operation) -> None:
        if op.status not in _EXECUTABLE:
            raise PolicyViolation(f"Operation {op.type} is not executable in status {op.status.value}")
        op.status = OperationStatus.doing
        op.start = now_ms()

    async def _invoke(self, op: Operation, ctx: HandlerContext) -> HandlerResult:
        if not self._handlers.has(op.type):
            raise HandlerError(f"No handler registered for operation {op.type}")
        result = await self._handlers.get(op.type).execute(ctx, input=dict(op.input))
        if result is None:
            return HandlerResult()
        if result.error:
            raise HandlerError(result.error)
        return result

    async def _preview(self, op: Operation, ctx: HandlerContext) -> OperationAnalysis:
        if not self._handlers.has(op.type):
            return OperationAnalysis(f"No handler is registered for operation {op.type}.", doable=False)
        analyzer = getattr(self._handlers.get(op.type), "analyze", None)
        if analyzer is None:
            spec = self._catalog.get(op.type)
            description = spec.description if spec is not None and spec.description else op.type
            return OperationAnalysis(f"This will run {op.type} ({op.kind.value} risk): {description}")
        return await analyzer(ctx, input=dict(op.input))

    def _validate(self, op: Operation, index: int) -> Dict[str, Any]:
        for dep in op.depends_on:
            if dep < 0 or dep >= index:
                raise ValidationError(f"depends_on index {dep} does not refer to an earlier operation")

        err = self._policy.validate_input(op.input)
        if err is not None:
            raise ValidationError(err)

        spec = self._catalog.get(op.type)
        if spec is None or spec.input_model is None:
            return dict(op.input)
        try:
            model = spec.input_model.model_validate(op.input)
        except PydanticValidationError as e:
            raise ValidationError(_describe_validation_error(e)) from e
        return model.model_dump(mode="json")

    def _update_message(self, op: Operation, *, title: Optional[str] = None) -> None:
        text = self._policy.redact(render_operation(op, title=title))
        op.message = truncate_message(text, max_chars=self._max_message_chars, archive=self._archive)
