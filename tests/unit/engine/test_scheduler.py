# tests/unit/engine/test_scheduler.py
"""Tests for FlushScheduler."""

import asyncio

import pytest
from structlog.testing import capture_logs

from logbatch.engine.scheduler import FlushScheduler


class TickCounter:
    def __init__(self, pending: bool = True) -> None:
        self.ticks = 0
        self.pending = pending

    def tick(self) -> None:
        self.ticks += 1

    def has_pending(self) -> bool:
        return self.pending


class TestFlushScheduler:
    @pytest.mark.asyncio
    async def test_ticks_periodically(self) -> None:
        counter = TickCounter()
        scheduler = FlushScheduler(counter.tick, counter.has_pending)

        scheduler.start(10)
        await asyncio.sleep(0.08)
        await scheduler.aclose()

        assert counter.ticks >= 2
        assert not scheduler.running

    @pytest.mark.asyncio
    async def test_no_tick_when_nothing_pending(self) -> None:
        counter = TickCounter(pending=False)
        scheduler = FlushScheduler(counter.tick, counter.has_pending)

        scheduler.start(10)
        await asyncio.sleep(0.05)
        await scheduler.aclose()

        assert counter.ticks == 0

    @pytest.mark.asyncio
    async def test_zero_interval_disables(self) -> None:
        counter = TickCounter()
        scheduler = FlushScheduler(counter.tick, counter.has_pending)

        scheduler.start(0)
        await asyncio.sleep(0.02)

        assert not scheduler.running
        assert scheduler.interval_ms == 0
        assert counter.ticks == 0

    @pytest.mark.asyncio
    async def test_negative_interval_rejected(self) -> None:
        scheduler = FlushScheduler(lambda: None, lambda: True)
        with pytest.raises(ValueError):
            scheduler.start(-1)

    @pytest.mark.asyncio
    async def test_double_start_rejected(self) -> None:
        scheduler = FlushScheduler(lambda: None, lambda: True)
        scheduler.start(1000)
        try:
            with pytest.raises(RuntimeError, match="restart"):
                scheduler.start(1000)
        finally:
            await scheduler.aclose()

    @pytest.mark.asyncio
    async def test_restart_replaces_timer(self) -> None:
        counter = TickCounter()
        scheduler = FlushScheduler(counter.tick, counter.has_pending)
        scheduler.start(10_000)

        scheduler.restart(10)
        await asyncio.sleep(0.08)
        await scheduler.aclose()

        assert scheduler.interval_ms == 10
        assert counter.ticks >= 2

    @pytest.mark.asyncio
    async def test_restart_to_zero_stops(self) -> None:
        counter = TickCounter()
        scheduler = FlushScheduler(counter.tick, counter.has_pending)
        scheduler.start(10)

        scheduler.restart(0)
        await asyncio.sleep(0.05)

        assert not scheduler.running
        assert counter.ticks == 0

    @pytest.mark.asyncio
    async def test_failing_tick_keeps_timer_alive(self) -> None:
        calls = 0

        def explode() -> None:
            nonlocal calls
            calls += 1
            raise RuntimeError("tick failed")

        scheduler = FlushScheduler(explode, lambda: True)
        with capture_logs() as logs:
            scheduler.start(10)
            await asyncio.sleep(0.08)
            assert scheduler.running
            await scheduler.aclose()

        assert calls >= 2
        assert any(log["event"] == "Scheduled flush failed" for log in logs)

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self) -> None:
        scheduler = FlushScheduler(lambda: None, lambda: True)
        scheduler.stop()
        scheduler.start(10)
        scheduler.stop()
        scheduler.stop()
        await asyncio.sleep(0)
        assert not scheduler.running
