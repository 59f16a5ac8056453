from __future__ import annotations

"""LangGraph conversation orchestrator.

``ConversationOrchestrator`` runs one user-visible turn for a chat: it calls
the model, lets the model propose operations through tools, persists the
assistant message and decides whether to go around again.

Execution model
---------------

- The orchestrator runs a small LangGraph state machine over ``_GraphState``:
  ``start -> turn -> (turn ...) -> finish``.
- Each ``turn`` node performs one model iteration with a fresh
  ``OperationManager``. Operations are proposed from tool calls while the
  model streams and are executed or parked for approval immediately.
- After the stream ends the manager is frozen, the message is saved (upsert
  by ``created``) and ``operations`` then ``complete`` are emitted.

Looping
-------

Another iteration runs automatically only when the iteration proposed at
least one operation, every operation concluded on its own (done, failed or
rejected) and fewer than ``max_follow_up_turns`` follow-ups were used. The
turn otherwise finishes as ``awaitingApproval`` when something waits for a
human, or ``done``.

Timeouts and cancellation
-------------------------

The whole turn runs under ``asyncio.wait_for``; the deadline is also checked
at every stream chunk. Cancellation is cooperative and checked at chunk and
iteration boundaries. Either way the partial message is persisted; a timeout
emits exactly one ``error`` event, a cancellation emits neither ``error`` nor
``complete``.
"""

import asyncio
import json
import logging
import math
import time
from contextlib import aclosing
from dataclasses import dataclass
from typing import AsyncIterator, Dict, Optional
from uuid import uuid4

from langgraph.graph import END, StateGraph

from ...core.monitoring import log_error, log_turn_completed, log_turn_started
from ..abstraction.base import ModelRequest
from ..handlers.base import HandlerContext
from ..operations.errors import TurnCancelled, TurnTimeout
from ..operations.manager import OperationManager
from ..repos.interfaces import next_created, upsert_message
from ..schemas.domain import Message, MessageRole, now_ms
from ..schemas.events import (
    CompleteEvent,
    ElapsedEvent,
    ErrorEvent,
    ModelCompleteEvent,
    OperationsEvent,
    OrchestratorEvent,
    PendingUpdateEvent,
    ReasonEvent,
    RequestTokensEvent,
    ResponseTokensEvent,
    StatusEvent,
    TextCompleteEvent,
    TextPartialEvent,
    TextResetEvent,
    TokensEvent,
    ToolStartEvent,
    UsageEvent,
)
from .cancellation import CancellationToken
from .history import build_model_history
from .models import (
    EventSink,
    OrchestratorConfig,
    OrchestratorDeps,
    TokenCounter,
    TurnOutcome,
    TurnRequest,
    TurnStatus,
    _GraphState,
    estimate_tokens,
    transition,
)
from .streaming import iterate_events
from .tools import build_tool_descriptors

logger = logging.getLogger(__name__)


@dataclass
class _TurnRun:
    """Per-run objects that do not belong in the graph state."""

    request: TurnRequest
    emit: EventSink
    cancel: CancellationToken
    started: float
    status: TurnStatus = TurnStatus.idle
    manager: Optional[OperationManager] = None
    pending: Optional[Message] = None
    last_message: Optional[Message] = None
    iterations: int = 0
    terminal_emitted: bool = False


class ConversationOrchestrator:
    """Run conversation turns for chats against a streaming ``ChatModel``."""

    def __init__(self, *, deps: OrchestratorDeps, config: Optional[OrchestratorConfig] = None) -> None:
        """
        Initialize the ConversationOrchestrator.

        Args:
            deps: Model, handler registry, catalog, policy and archive.
            config: Loop limits; defaults to ``OrchestratorConfig()``.
        """
        self._deps = deps
        self._config = config or OrchestratorConfig()
        self._runs: Dict[str, _TurnRun] = {}
        self._graph = self._build_graph()

    @property
    def config(self) -> OrchestratorConfig:
        return self._config

    def _build_graph(self):
        """Build and compile the LangGraph state machine."""
        g: StateGraph = StateGraph(_GraphState)
        g.add_node("start", self._node_start)
        g.add_node("turn", self._node_turn)
        g.add_node("finish", self._node_finish)

        g.set_entry_point("start")
        g.add_edge("start", "turn")
        g.add_conditional_edges(
            "turn",
            self._route_after_turn,
            {
                "continue": "turn",
                "finish": "finish",
            },
        )
        g.add_edge("finish", END)
        return g.compile()

    async def run(
        self,
        request: TurnRequest,
        emit: EventSink,
        cancel: Optional[CancellationToken] = None,
    ) -> TurnOutcome:
        """
        Run one turn to completion.

        Errors never escape: failures are reported through an ``error`` event
        and the returned outcome's status.
        """
        run_id = uuid4().hex
        run = _TurnRun(request=request, emit=emit, cancel=cancel or CancellationToken(), started=time.monotonic())
        self._runs[run_id] = run
        chat = request.chat
        error: Optional[str] = None

        run.status = transition(run.status, TurnStatus.running)
        await emit(StatusEvent(status=TurnStatus.running.value))
        try:
            final = await asyncio.wait_for(
                self._graph.ainvoke(
                    {"run_id": run_id, "iteration": 0, "follow_ups": 0},
                    config={"recursion_limit": self._config.max_follow_up_turns + 10},
                ),
                timeout=self._config.timeout_seconds,
            )
            run.status = transition(run.status, TurnStatus(final.get("_status", TurnStatus.done.value)))
        except TurnCancelled:
            logger.info(f"Turn for chat {chat.id} cancelled")
            await self._persist_partial(run, reason="cancelled")
            run.status = transition(run.status, TurnStatus.cancelled)
        except (asyncio.TimeoutError, TurnTimeout):
            error = f"Turn timed out after {self._config.timeout_seconds:g} seconds"
            logger.warning(f"Chat {chat.id}: {error}")
            await self._persist_partial(run, reason="timed out")
            run.status = transition(run.status, TurnStatus.errored)
            await self._emit_error(run, error)
        except Exception as e:
            error = str(e) or e.__class__.__name__
            logger.error(f"Turn for chat {chat.id} failed: {error}", exc_info=True)
            log_error("turn_failed", error, {"chat_id": chat.id})
            await self._persist_partial(run, reason="failed")
            run.status = transition(run.status, TurnStatus.errored)
            await self._emit_error(run, error)
        finally:
            self._runs.pop(run_id, None)

        if run.status in (TurnStatus.done, TurnStatus.awaiting_approval):
            await emit(StatusEvent(status=run.status.value))

        duration_ms = (time.monotonic() - run.started) * 1000
        operations = len(run.last_message.operations or []) if run.last_message is not None else 0
        log_turn_completed(chat.id, run.status.value, duration_ms, operations)
        logger.info(f"Turn for chat {chat.id} finished: {run.status.value} after {run.iterations} iteration(s)")
        return TurnOutcome(status=run.status, message=run.last_message, iterations=run.iterations, error=error)

    async def stream_events(
        self,
        request: TurnRequest,
        cancel: Optional[CancellationToken] = None,
    ) -> AsyncIterator[OrchestratorEvent]:
        """Run a turn and yield its events. Closing the iterator cancels the turn."""
        token = cancel or CancellationToken()
        async for event in iterate_events(lambda emit: self.run(request, emit, token), on_close=token.cancel):
            yield event

    async def _node_start(self, state: _GraphState) -> _GraphState:
        return state

    async def _node_turn(self, state: _GraphState) -> _GraphState:
        run = self._runs[state["run_id"]]
        run.cancel.raise_if_cancelled()
        chat = run.request.chat
        chat_data = run.request.chat_data
        iteration = state["iteration"]
        run.iterations = iteration + 1
        log_turn_started(chat.id, chat.mode.value, iteration)

        history = await chat_data.get_messages()
        manager = OperationManager(
            mode=chat.mode,
            handlers=self._deps.handlers,
            catalog=self._deps.catalog,
            policy=self._deps.policy,
            archive=self._deps.archive,
            max_message_chars=self._config.max_message_chars,
        )
        message = Message(
            role=MessageRole.assistant,
            created=next_created(history, now_ms()),
            name=self._config.assistant_name or chat.assistant,
        )
        run.manager = manager
        run.pending = message

        ctx = HandlerContext(
            chat=chat,
            mode=chat.mode,
            operations=manager.operations,
            resources=run.request.resources,
            cancel=run.cancel,
        )
        model_request = ModelRequest(
            messages=build_model_history(history),
            tools=build_tool_descriptors(
                catalog=self._deps.catalog, manager=manager, ctx=ctx, kinds=self._deps.handlers.kinds()
            ),
            system_prompt=self._config.system_prompt,
            model=chat.model,
        )

        tokens = TokenCounter()
        text = ""
        reasoning = ""
        async with aclosing(self._deps.model.stream(model_request)) as stream:
            async for event in stream:
                run.cancel.raise_if_cancelled()
                self._check_deadline(run)

                if isinstance(event, TextPartialEvent):
                    text += event.content
                    tokens.output = estimate_tokens(text)
                elif isinstance(event, TextCompleteEvent):
                    text = event.content
                    tokens.output = estimate_tokens(text)
                elif isinstance(event, TextResetEvent):
                    tokens.discarded += tokens.output
                    tokens.output = 0
                    text = ""
                elif isinstance(event, ReasonEvent):
                    reasoning += event.content
                    tokens.reasoning = estimate_tokens(reasoning)
                elif isinstance(event, ToolStartEvent):
                    payload = json.dumps(event.input, default=str)
                    tokens.discarded += math.ceil((len(event.name) + len(payload)) / 4)
                    await run.emit(StatusEvent(status=f"Running {event.name}"))
                elif isinstance(event, UsageEvent):
                    tokens.discarded = 0
                    tokens.reasoning = event.reasoning_tokens
                    tokens.output = event.output_tokens
                elif isinstance(event, ResponseTokensEvent):
                    tokens.output = event.tokens
                elif isinstance(event, RequestTokensEvent):
                    if iteration == 0:
                        await self._record_request_tokens(run, event.tokens)
                elif isinstance(event, ModelCompleteEvent):
                    pass
                else:
                    logger.debug(f"Ignoring unknown model event {event!r}")

                message.content = text
                message.operations = list(manager.operations) or None
                await run.emit(PendingUpdateEvent(message=message.model_copy(deep=True)))
                await run.emit(
                    TokensEvent(output=tokens.output, reasoning=tokens.reasoning, discarded=tokens.discarded)
                )
                await run.emit(ElapsedEvent(ms=self._elapsed_ms(run)))

        manager.freeze()
        message.content = text
        message.operations = list(manager.operations) or None
        message.tokens = tokens.output
        await self._save(run, message)
        run.last_message = message
        run.pending = None

        if manager.operations:
            await run.emit(
                OperationsEvent(
                    operations=[op.model_copy(deep=True) for op in manager.operations],
                    summary=manager.summary(),
                )
            )
        await run.emit(CompleteEvent(message=message.model_copy(deep=True)))

        follow_ups = state["follow_ups"]
        if manager.operations and manager.all_concluded() and follow_ups < self._config.max_follow_up_turns:
            logger.debug(f"Chat {chat.id}: all operations concluded, running follow-up {follow_ups + 1}")
            return {**state, "iteration": iteration + 1, "follow_ups": follow_ups + 1, "_next": "continue"}

        status = TurnStatus.awaiting_approval if manager.requires_approval() else TurnStatus.done
        return {**state, "_next": "finish", "_status": status.value}

    async def _node_finish(self, state: _GraphState) -> _GraphState:
        return state

    def _route_after_turn(self, state: _GraphState) -> str:
        return state.get("_next", "finish")

    def _elapsed_ms(self, run: _TurnRun) -> int:
        return int((time.monotonic() - run.started) * 1000)

    def _check_deadline(self, run: _TurnRun) -> None:
        if time.monotonic() - run.started > self._config.timeout_seconds:
            raise TurnTimeout(f"turn exceeded {self._config.timeout_seconds:g} seconds")

    async def _save(self, run: _TurnRun, message: Message) -> None:
        stored = message.model_copy(deep=True)
        await run.request.chat_data.save(lambda messages: upsert_message(messages, stored))

    async def _record_request_tokens(self, run: _TurnRun, tokens: int) -> None:
        def mutate(messages):
            for m in reversed(messages):
                if m.role == MessageRole.user:
                    m.tokens = tokens
                    return None
            return None

        await run.request.chat_data.save(mutate)

    async def _persist_partial(self, run: _TurnRun, *, reason: str) -> None:
        """Freeze and store whatever the interrupted iteration produced. Save failures are only logged."""
        manager = run.manager
        message = run.pending
        if manager is None or message is None:
            return
        manager.abandon(f"turn {reason} while the operation was running")
        message.operations = list(manager.operations) or None
        run.pending = None
        if not message.content and not message.operations:
            return
        run.last_message = message
        try:
            await self._save(run, message)
        except Exception as e:
            chat_id = run.request.chat.id
            logger.error(f"Could not persist interrupted turn of chat {chat_id}: {e}", exc_info=True)
            log_error("turn_persist_failed", str(e) or e.__class__.__name__, {"chat_id": chat_id})

    async def _emit_error(self, run: _TurnRun, error: str) -> None:
        if run.terminal_emitted:
            return
        run.terminal_emitted = True
        await run.emit(ErrorEvent(error=error))
