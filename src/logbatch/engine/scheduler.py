# src/logbatch/engine/scheduler.py
"""Periodic flush trigger.

Runs as a cancellable asyncio task. Reconfiguring always stops the previous
task before starting the next one, so at most one timer exists per engine.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable

import structlog

logger = structlog.get_logger(__name__)


class FlushScheduler:
    """Calls ``on_tick`` every interval while ``has_pending`` reports work.

    The tick itself is synchronous and only requests a flush; delivery runs
    in the orchestrator's own background task, so a slow sink never delays
    the next tick.

    Example:
        scheduler = FlushScheduler(orchestrator.request_flush, buffer.has_pending)
        scheduler.start(1000)
        scheduler.restart(250)
        scheduler.stop()
    """

    def __init__(self, on_tick: Callable[[], object], has_pending: Callable[[], bool]) -> None:
        self._on_tick = on_tick
        self._has_pending = has_pending
        self._interval_ms = 0
        self._task: asyncio.Task[None] | None = None

    @property
    def interval_ms(self) -> int:
        """Current interval; 0 when periodic flushing is disabled."""
        return self._interval_ms

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, interval_ms: int) -> None:
        """Start ticking every interval_ms. 0 leaves the scheduler stopped.

        Raises:
            ValueError: If interval_ms is negative.
            RuntimeError: If already running (use restart()).
        """
        if interval_ms < 0:
            raise ValueError(f"interval_ms must be >= 0, got {interval_ms}")
        if self.running:
            raise RuntimeError("FlushScheduler already running; use restart()")

        self._interval_ms = interval_ms
        if interval_ms == 0:
            logger.debug("Periodic flush disabled")
            return
        self._task = asyncio.get_running_loop().create_task(self._run(interval_ms / 1000), name="logbatch-flush-timer")

    def stop(self) -> None:
        """Cancel the timer task, if any. Idempotent."""
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def restart(self, interval_ms: int) -> None:
        """Stop the current timer, then start a new one at interval_ms."""
        self.stop()
        self.start(interval_ms)

    async def _run(self, interval_s: float) -> None:
        while True:
            await asyncio.sleep(interval_s)
            if not self._has_pending():
                continue
            logger.debug("flush interval: has logs")
            try:
                self._on_tick()
            except Exception as e:
                # The timer must survive a failing tick
                logger.error("Scheduled flush failed", error=str(e))

    async def aclose(self) -> None:
        """Stop and wait for the timer task to finish unwinding."""
        task = self._task
        self.stop()
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task
