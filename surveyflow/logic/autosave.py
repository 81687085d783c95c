"""Recurring best-effort autosave timer.

One asyncio task per form session sleeps for the configured interval and
then launches the save callback as its own task, so a slow save never delays
the next tick or user interaction. A tick is skipped while the previous
save is still in flight. Callback failures are logged and swallowed; the
next tick simply tries again.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 30.0


class AutosaveTimer:
    def __init__(
        self,
        callback: Callable[[], Awaitable[Any]],
        interval: float = DEFAULT_INTERVAL_SECONDS,
        name: str = "autosave",
    ) -> None:
        if interval <= 0:
            raise ValueError("autosave interval must be positive")
        self._callback = callback
        self.interval = float(interval)
        self.name = name
        self._loop_task: Optional[asyncio.Task] = None
        self._tick_task: Optional[asyncio.Task] = None
        self.ticks = 0
        self.skipped = 0

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def saving(self) -> bool:
        return self._tick_task is not None and not self._tick_task.done()

    def start(self) -> None:
        """Start the timer on the running event loop; a second call is a no-op."""
        if self.running:
            return
        self._loop_task = asyncio.get_running_loop().create_task(self._run(), name=f"{self.name}-loop")
        logger.info("autosave_timer_started name=%s interval=%s", self.name, self.interval)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.ticks += 1
            if self.saving:
                self.skipped += 1
                logger.info("autosave_tick_skipped name=%s reason=in_flight", self.name)
                continue
            self._tick_task = asyncio.get_running_loop().create_task(self._tick(), name=f"{self.name}-tick")

    async def _tick(self) -> None:
        try:
            await self._callback()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.warning("autosave_tick_failed name=%s", self.name, exc_info=True)

    async def stop(self) -> None:
        """Cancel the loop and any in-flight tick, then wait for both to finish."""
        tasks = [t for t in (self._loop_task, self._tick_task) if t is not None and not t.done()]
        for t in tasks:
            t.cancel()
        for t in tasks:
            try:
                await t
            except asyncio.CancelledError:
                pass
        if tasks:
            logger.info("autosave_timer_stopped name=%s ticks=%s", self.name, self.ticks)
        self._loop_task = None
        self._tick_task = None


__all__ = ["AutosaveTimer", "DEFAULT_INTERVAL_SECONDS"]
