"""Polling scheduler.

Runs one cycle immediately on start, then one cycle every `interval`
seconds until stopped. Cycles never overlap: the next wait only begins once
the previous cycle has finished. Stopping never interrupts a running cycle.

Usage:
    scheduler = PollingScheduler(gateway.run_cycle, interval=10)
    scheduler.start()
    # ... later ...
    scheduler.stop()
    await scheduler.join()
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

LOGGER = logging.getLogger(__name__)


class PollingScheduler:
    """Cooperative polling loop driving a cycle coroutine."""

    def __init__(self, cycle: Callable[[], Awaitable[object]], interval: float) -> None:
        self._cycle = cycle
        self._interval = interval
        self._polling = False
        self._task: Optional[asyncio.Task] = None
        self._wakeup: Optional[asyncio.Event] = None
        self.cycles_run = 0

    @property
    def polling(self) -> bool:
        return self._polling

    def start(self) -> None:
        """Start polling on the running event loop."""

        if self._task is not None and not self._task.done():
            if self._polling:
                LOGGER.warning("Polling already running")
                return
            # Stopped but the last cycle is still underway: keep that loop going.
            self._polling = True
            self._wakeup.clear()
            LOGGER.info("Polling resumed before the loop exited")
            return

        self._polling = True
        self._wakeup = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(self._run_loop())
        LOGGER.info("Polling started (interval=%ss)", self._interval)

    def stop(self) -> None:
        """Prevent further cycles; a cycle already underway runs to completion."""

        self._polling = False
        if self._wakeup is not None:
            self._wakeup.set()

    async def join(self) -> None:
        """Wait until the polling loop has exited."""

        if self._task is not None:
            await self._task

    async def _run_loop(self) -> None:
        while self._polling:
            try:
                await self._cycle()
            except Exception:
                LOGGER.exception("Polling cycle failed")
            self.cycles_run += 1

            if not self._polling:
                break
            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass

        LOGGER.info("Polling stopped after %s cycle(s)", self.cycles_run)
