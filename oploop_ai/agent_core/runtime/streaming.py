"""Bridge callback-style event emission into an async iterator.

The orchestrator and the chat service report progress through an
``EventSink`` callback. Transports (SSE, tests) usually want an async
iterator instead; ``iterate_events`` runs the producer in a task and yields
whatever it emits. Closing the iterator early calls ``on_close`` (typically
cancelling the turn) and waits for the producer to wind down.
"""

import asyncio
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

from ..schemas.events import OrchestratorEvent
from .models import EventSink

_DONE = object()


async def iterate_events(
    producer: Callable[[EventSink], Awaitable[Any]],
    *,
    on_close: Optional[Callable[[], None]] = None,
) -> AsyncIterator[OrchestratorEvent]:
    queue: "asyncio.Queue[Any]" = asyncio.Queue()

    async def emit(event: OrchestratorEvent) -> None:
        await queue.put(event)

    async def runner() -> Any:
        try:
            return await producer(emit)
        finally:
            queue.put_nowait(_DONE)

    task = asyncio.create_task(runner())
    try:
        while True:
            item = await queue.get()
            if item is _DONE:
                break
            yield item
        await task
    finally:
        if not task.done():
            if on_close is not None:
                on_close()
            await task
