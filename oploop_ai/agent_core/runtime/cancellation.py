"""Cooperative cancellation for turns.

The orchestrator checks the token at stream-chunk and loop-iteration
boundaries; running handlers are never interrupted.
"""

import asyncio

from ..operations.errors import TurnCancelled


class CancellationToken:
    """One-shot cancellation signal shared between a turn and its caller."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise TurnCancelled("turn cancelled by user")
