"""Debounce scheduler - one cancellable timer per key."""

import asyncio
from typing import Awaitable, Callable, Hashable, Optional

from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

Callback = Callable[[], Awaitable[None]]


class DebounceScheduler:
    """
    Map from key to a pending ``asyncio.Task`` that sleeps, then runs a callback.

    Scheduling a key that already has a timer cancels the old one, so a burst
    of edits collapses into a single call after the quiet period. A timer
    removes itself from the map before invoking its callback: cancelling a
    key whose write is already running does not abort that write.
    """

    def __init__(self, delay_seconds: float = 1.5):
        self.delay_seconds = delay_seconds
        self.timers: dict[Hashable, asyncio.Task] = {}
        self._callbacks: dict[Hashable, Callback] = {}

    def schedule(self, key: Hashable, fn: Callback, delay: Optional[float] = None) -> None:
        """(Re)start the timer for ``key``; ``fn`` runs after ``delay`` seconds of quiet."""
        delay = self.delay_seconds if delay is None else delay

        if self.cancel(key):
            logger.debug("Debounce timer reset", key=str(key))

        self._callbacks[key] = fn
        self.timers[key] = asyncio.create_task(self._run_after_delay(key, fn, delay))

    def cancel(self, key: Hashable) -> bool:
        """Cancel the pending timer for ``key``. Returns whether one was pending."""
        task = self.timers.pop(key, None)
        self._callbacks.pop(key, None)
        if task is None:
            return False
        task.cancel()
        return True

    def is_pending(self, key: Hashable) -> bool:
        return key in self.timers

    def pending_keys(self) -> list[Hashable]:
        return list(self.timers)

    async def flush(self, key: Hashable) -> bool:
        """Run the pending callback for ``key`` now instead of waiting out the delay."""
        fn = self._callbacks.get(key)
        if fn is None:
            return False
        self.cancel(key)
        await self._invoke(key, fn)
        return True

    async def flush_all(self) -> int:
        """Run every pending callback now. Returns how many ran."""
        keys = self.pending_keys()
        flushed = 0
        for key in keys:
            if await self.flush(key):
                flushed += 1
        return flushed

    def cancel_all(self) -> None:
        for key in self.pending_keys():
            self.cancel(key)

    async def _run_after_delay(self, key: Hashable, fn: Callback, delay: float) -> None:
        await asyncio.sleep(delay)

        if self.timers.get(key) is not asyncio.current_task():
            return
        del self.timers[key]
        self._callbacks.pop(key, None)

        await self._invoke(key, fn)

    async def _invoke(self, key: Hashable, fn: Callback) -> None:
        try:
            await fn()
        except Exception as e:
            logger.error(
                "Debounced callback failed",
                key=str(key),
                error=str(e),
                exc_info=True
            )
