# tests/property/test_delivery_properties.py
"""Property-based tests for end-to-end delivery through LogBatcher.

Properties:
- Every accepted event is delivered exactly once (no loss, no duplication)
- Each put is sorted by timestamp, ties in submission order
- Each put respects the batch count and byte ceilings
- With poison events in the mix, every healthy event is still delivered and
  exactly the poison events are dropped
"""

import asyncio
from collections import Counter
from typing import Any

from hypothesis import given
from hypothesis import strategies as st

from logbatch import LogBatcher
from logbatch.contracts.enums import SinkErrorKind
from logbatch.contracts.events import LogEvent
from logbatch.core.config import BatcherSettings, LimitSettings, RateLimitSettings
from logbatch.errors import SinkError
from tests.fixtures.sink import PutCall, RecordingSinkClient

STREAMS = ["web", "jobs", "api"]

event_entries = st.lists(
    st.tuples(
        st.sampled_from(STREAMS),
        st.integers(min_value=0, max_value=50),
        st.text(alphabet="abcé", max_size=8),
    ),
    max_size=60,
)


def settings_for(max_batch_count: int, max_batch_bytes: int) -> BatcherSettings:
    return BatcherSettings(
        flush_interval_ms=0,
        rate_limit=RateLimitSettings(interval_ms=0),
        limits=LimitSettings(max_event_size=24, max_batch_count=max_batch_count, max_batch_bytes=max_batch_bytes),
    )


async def run_engine(
    settings: BatcherSettings,
    entries: list[tuple[str, int, str]],
    sink: RecordingSinkClient,
) -> tuple[list[tuple[str, LogEvent]], dict[str, Any]]:
    """Log every generated event (message made unique by index) and flush.

    Returns:
        What was logged, and the final health metrics.
    """
    logged: list[tuple[str, LogEvent]] = []
    async with LogBatcher(settings) as batcher:
        batcher.configure(sink)
        for i, (stream, ts, text) in enumerate(entries):
            event = LogEvent(ts, f"{i}:{text}")
            batcher.log_event("app", stream, event)
            logged.append((stream, event))
        await batcher.flush_now()
    return logged, batcher.health_metrics


class TestDeliveryProperties:
    @given(
        entries=event_entries,
        max_batch_count=st.integers(min_value=2, max_value=8),
        max_batch_bytes=st.integers(min_value=60, max_value=300),
    )
    def test_every_event_delivered_once_within_limits(
        self,
        entries: list[tuple[str, int, str]],
        max_batch_count: int,
        max_batch_bytes: int,
    ) -> None:
        sink = RecordingSinkClient()
        settings = settings_for(max_batch_count, max_batch_bytes)

        logged, _ = asyncio.run(run_engine(settings, entries, sink))

        for stream in STREAMS:
            expected = [event for s, event in logged if s == stream]
            assert Counter(sink.delivered("app", stream)) == Counter(expected)

        limits = settings.limits
        for put in sink.puts:
            timestamps = [e.timestamp for e in put.events]
            assert timestamps == sorted(timestamps)
            assert len(put.events) < limits.max_batch_count
            assert sum(e.byte_size + limits.event_overhead for e in put.events) < limits.max_batch_bytes

    @given(timestamps=st.lists(st.integers(min_value=0, max_value=3), max_size=30))
    def test_equal_timestamps_keep_submission_order(self, timestamps: list[int]) -> None:
        sink = RecordingSinkClient()
        settings = BatcherSettings(flush_interval_ms=0, rate_limit=RateLimitSettings(interval_ms=0))

        logged, _ = asyncio.run(run_engine(settings, [("web", ts, "") for ts in timestamps], sink))

        expected = sorted((event for _, event in logged), key=lambda e: e.timestamp)
        assert sink.delivered("app", "web") == expected

    @given(
        entries=event_entries,
        poison=st.sets(st.integers(min_value=0, max_value=59), max_size=6),
    )
    def test_poison_events_dropped_others_delivered(self, entries: list[tuple[str, int, str]], poison: set[int]) -> None:
        poison_messages = {f"{i}:{text}" for i, (_, _, text) in enumerate(entries) if i in poison}

        def reject_poison(call: PutCall) -> BaseException | None:
            if call.group == "app" and any(e.message in poison_messages for e in call.events):
                return SinkError(SinkErrorKind.OTHER, "poison")
            return None

        sink = RecordingSinkClient(fail_put=reject_poison)
        settings = settings_for(max_batch_count=5, max_batch_bytes=200)

        logged, metrics = asyncio.run(run_engine(settings, entries, sink))

        for stream in STREAMS:
            healthy = [e for s, e in logged if s == stream and e.message not in poison_messages]
            assert Counter(sink.delivered("app", stream)) == Counter(healthy)
        assert metrics["events_dropped"] == len(poison_messages)
