# src/logbatch/engine/orchestrator.py
"""FlushOrchestrator drains buffers and delivers batches with halve-and-retry.

Flush lifecycle:
1. request_flush() drains every buffer synchronously (no push can interleave)
2. The snapshot is handed to a background task and request_flush() returns
3. Snapshots are sent one at a time, in drain order, under a FIFO send lock
4. Per destination: ensure stream -> put batch -> on failure split in halves
5. Failures are isolated per destination and reported to the diagnostics
   destination (and always to the local log)

Design principles:
- Each trigger owns a disjoint snapshot, so overlapping triggers never
  double-send; a trigger that finds empty buffers is a no-op
- A terminal single-event failure drops that event; nothing is requeued
- Reporting a failure never raises
"""

from __future__ import annotations

import asyncio
import json
import math
import time
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import structlog

from logbatch.contracts.enums import SinkErrorKind
from logbatch.contracts.events import Destination, LogEvent
from logbatch.engine.limits import clip_event
from logbatch.errors import DeliveryError, SinkError, classify

if TYPE_CHECKING:
    from logbatch.clients.protocols import LogSinkClient
    from logbatch.core.config import DiagnosticsSettings, LimitSettings
    from logbatch.core.rate_limit import NoOpLimiter, RateLimiter
    from logbatch.engine.buffer import EventBuffer
    from logbatch.engine.provisioner import ResourceProvisioner

logger = structlog.get_logger(__name__)

Batches = list[tuple[Destination, list[LogEvent]]]


def _now_ms() -> int:
    return int(time.time() * 1000)


class FlushOrchestrator:
    """Coordinates delivery of drained buffers to the sink.

    Thread Safety:
        NOT thread-safe. request_flush() must be called on the event loop
        that owns the engine.

    Example:
        orchestrator = FlushOrchestrator(buffer, provisioner, client, limiter, limits, diagnostics)
        orchestrator.request_flush()  # returns immediately
        await orchestrator.wait_idle()
    """

    def __init__(
        self,
        buffer: EventBuffer,
        provisioner: ResourceProvisioner,
        client: LogSinkClient,
        limiter: RateLimiter | NoOpLimiter,
        limits: LimitSettings,
        diagnostics: DiagnosticsSettings,
    ) -> None:
        self._buffer = buffer
        self._provisioner = provisioner
        self._client = client
        self._limiter = limiter
        self._limits = limits
        self._diagnostics = diagnostics
        self._diagnostics_destination = Destination(diagnostics.group, diagnostics.stream)

        self._send_lock = asyncio.Lock()
        self._pending: set[asyncio.Task[None]] = set()
        self._sequence_tokens: dict[Destination, str | None] = {}

        # Health metrics
        self._batches_sent = 0
        self._events_sent = 0
        self._events_dropped = 0
        self._delivery_failures = 0
        self._diagnostics_failed = 0

    # =========================================================================
    # Triggers
    # =========================================================================

    def request_flush(self) -> asyncio.Task[None] | None:
        """Drain all buffers now and send the snapshot in the background.

        Returns:
            The task delivering this snapshot, or None if nothing was buffered.

        Raises:
            RuntimeError: If no event loop is running. The buffers are left
                untouched.
        """
        # Before the drain: a failed trigger must not discard the buffers
        loop = asyncio.get_running_loop()
        batches = self._buffer.drain_all()
        if not batches:
            return None

        task = loop.create_task(self._send_all(batches))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def wait_idle(self) -> None:
        """Wait until every snapshot drained so far has been processed."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # =========================================================================
    # Delivery
    # =========================================================================

    async def _send_all(self, batches: Batches) -> None:
        async with self._send_lock:
            for destination, events in batches:
                await self._send_destination(destination, events)

    async def _send_destination(self, destination: Destination, events: list[LogEvent]) -> None:
        """Deliver one destination's batch. Never raises (except cancellation)."""
        try:
            await self._provisioner.ensure_stream(destination.group, destination.stream)
            try:
                await self._put(destination, events)
            except DeliveryError as error:
                if len(events) == 1:
                    await self._drop(destination, events, error)
                    return
                await self._report(
                    destination,
                    "flushing error (will retry)",
                    error,
                    logs_count=len(events),
                    logs_raw_total_size=sum(event.byte_size for event in events),
                )
                await self._split_and_retry(destination, events, error)
        except Exception as error:
            self._events_dropped += len(events)
            await self._report(destination, "flushing error", error, logs_count=len(events))

    async def _split_and_retry(
        self,
        destination: Destination,
        events: Sequence[LogEvent],
        error: DeliveryError,
    ) -> None:
        """Halve a failed batch and deliver each half, recursing on failure.

        Terminates: every level halves the batch, and a failed single-event
        batch is dropped instead of split.
        """
        if len(events) == 1:
            await self._drop(destination, events, error)
            return

        half = math.ceil(len(events) / 2)
        for part in (events[:half], events[half:]):
            if error.kind is SinkErrorKind.INVALID_PARAMETER:
                part = [clip_event(event, self._limits.max_event_size) for event in part]
            try:
                await self._put(destination, part)
            except DeliveryError as part_error:
                logger.debug(
                    "Partial batch failed, splitting further",
                    destination=str(destination),
                    count=len(part),
                    kind=part_error.kind,
                )
                await self._split_and_retry(destination, part, part_error)

    async def _put(self, destination: Destination, events: Sequence[LogEvent]) -> None:
        """One rate-limited put, with a single retry on a stale sequence token.

        Raises:
            DeliveryError: chained to the client's exception.
        """
        token = self._sequence_tokens.get(destination)
        try:
            try:
                next_token = await self._limiter.submit(
                    self._client.put_batch, destination.group, destination.stream, events, token
                )
            except SinkError as e:
                if e.kind is not SinkErrorKind.INVALID_SEQUENCE_TOKEN or e.expected_sequence_token is None:
                    raise
                logger.debug("Retrying with expected sequence token", destination=str(destination))
                next_token = await self._limiter.submit(
                    self._client.put_batch,
                    destination.group,
                    destination.stream,
                    events,
                    e.expected_sequence_token,
                )
        except Exception as e:
            self._delivery_failures += 1
            logger.warning(
                "Put log events failed",
                destination=str(destination),
                count=len(events),
                error=str(e),
            )
            raise DeliveryError(destination, len(events), classify(e)) from e

        self._sequence_tokens[destination] = next_token
        self._batches_sent += 1
        self._events_sent += len(events)
        logger.debug("putEventLogs", destination=str(destination), count=len(events))

    async def _drop(self, destination: Destination, events: Sequence[LogEvent], error: DeliveryError) -> None:
        """Give up on a single event that failed on its own."""
        self._events_dropped += len(events)
        event = events[0]
        await self._report(
            destination,
            "event dropped",
            error,
            timestamp=event.timestamp,
            size=event.byte_size,
        )

    # =========================================================================
    # Self-diagnostics
    # =========================================================================

    async def _report(self, destination: Destination, message: str, error: BaseException, **context: Any) -> None:
        """Record a failure locally and, where allowed, at the diagnostics destination.

        Never raises: a failure to report is logged locally only, so reporting
        can't loop on itself.
        """
        report: dict[str, Any] = {
            "message": message,
            "error": str(error),
            "cause": str(error.__cause__),
            "group": destination.group,
            "stream": destination.stream,
            **context,
        }
        logger.error("Log delivery failure", **report)

        if not self._diagnostics.enabled or destination == self._diagnostics_destination:
            return

        target = self._diagnostics_destination
        event = clip_event(LogEvent(_now_ms(), json.dumps(report, default=str)), self._limits.max_event_size)
        try:
            await self._provisioner.ensure_stream(target.group, target.stream)
            await self._limiter.submit(self._client.put_batch, target.group, target.stream, [event], None)
        except Exception as report_error:
            self._diagnostics_failed += 1
            logger.error(
                "Self-diagnostic delivery failed",
                diagnostics=str(target),
                error=str(report_error),
                report=report,
            )

    # =========================================================================
    # Health
    # =========================================================================

    @property
    def health_metrics(self) -> dict[str, int]:
        """Snapshot of delivery counters.

        - batches_sent / events_sent: successful puts (retried halves count separately)
        - events_dropped: events given up on (terminal failures, provisioning failures)
        - delivery_failures: failed put attempts
        - diagnostics_failed: failure reports that could not be shipped
        - pending_flushes: snapshots not yet fully processed
        """
        return {
            "batches_sent": self._batches_sent,
            "events_sent": self._events_sent,
            "events_dropped": self._events_dropped,
            "delivery_failures": self._delivery_failures,
            "diagnostics_failed": self._diagnostics_failed,
            "pending_flushes": len(self._pending),
        }
