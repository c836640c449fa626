# src/logbatch/engine/batcher.py
"""LogBatcher is the public entry point of the engine.

It owns every piece of mutable state (buffers, resource registry, sequence
tokens, limiter queue, timer), so independent engines can coexist in one
process.

Usage:
    async with LogBatcher() as batcher:
        batcher.configure(CloudWatchLogsClient(region_name="eu-west-1"))
        batcher.log_event("my-service", "api", LogEvent(now_ms, "started"))
        log = batcher.get_logger("my-service", "worker")
        log.info({"job": 42, "state": "done"})
        await batcher.flush_now()
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from types import TracebackType
from typing import TYPE_CHECKING, Any

import structlog

from logbatch.contracts.enums import OversizedPolicy
from logbatch.contracts.events import Destination, LogEvent
from logbatch.core.config import BatcherSettings, load_settings
from logbatch.core.logging import configure_logging
from logbatch.core.rate_limit import NoOpLimiter, RateLimiter, create_limiter
from logbatch.engine.buffer import EventBuffer
from logbatch.engine.limits import exceeds_buffer_limit, exceeds_event_limit
from logbatch.engine.orchestrator import FlushOrchestrator
from logbatch.engine.policy import apply_oversized_policy
from logbatch.engine.provisioner import ResourceProvisioner
from logbatch.engine.scheduler import FlushScheduler
from logbatch.engine.stream_logger import StreamLogger
from logbatch.errors import ConfigurationError, RejectedEvent

if TYPE_CHECKING:
    from collections.abc import Callable

    from logbatch.clients.protocols import LogSinkClient

logger = structlog.get_logger(__name__)


class LogBatcher:
    """Buffers log events per destination and ships them in batches.

    Lifecycle:
        1. Construction: settings are fixed, buffers are empty
        2. configure(): binds the sink client and the running event loop,
           starts the flush timer. Only the first call has any effect.
        3. Operation: log_event() / StreamLogger calls never block
        4. Shutdown: close() stops the timer, flushes and waits for delivery

    Thread Safety:
        NOT thread-safe. All calls must come from the event loop that was
        running when configure() was called.
    """

    def __init__(self, settings: BatcherSettings | None = None) -> None:
        """Initialize an unconfigured engine.

        Args:
            settings: Engine settings; defaults match CloudWatch Logs limits.
        """
        self._settings = settings if settings is not None else BatcherSettings()
        self._buffer = EventBuffer(self._settings.limits.event_overhead)
        self._configured = False
        self._closed = False
        self._limiter: RateLimiter | NoOpLimiter | None = None
        self._provisioner: ResourceProvisioner | None = None
        self._orchestrator: FlushOrchestrator | None = None
        self._scheduler: FlushScheduler | None = None
        self._background: set[asyncio.Task[None]] = set()

    @classmethod
    def from_config(cls, config_path: Path, *, setup_logging: bool = True) -> LogBatcher:
        """Build an engine from a YAML settings file (LOGBATCH_* env overrides apply).

        Args:
            config_path: Settings file path
            setup_logging: Also configure structlog from the ``logging`` section
        """
        settings = load_settings(config_path)
        if setup_logging:
            configure_logging(json_output=settings.logging.json_output, level=settings.logging.level)
        return cls(settings)

    @property
    def settings(self) -> BatcherSettings:
        return self._settings

    @property
    def configured(self) -> bool:
        return self._configured

    # =========================================================================
    # Configuration
    # =========================================================================

    def configure(
        self,
        client: LogSinkClient,
        flush_interval_ms: int | None = None,
        oversized_policy: OversizedPolicy | str | None = None,
    ) -> None:
        """Bind the sink client and start the engine. First call wins.

        Args:
            client: Remote sink client
            flush_interval_ms: Override settings.flush_interval_ms (0 disables
                periodic flushing)
            oversized_policy: Override settings.oversized_policy

        Raises:
            ConfigurationError: If the batcher was closed, no event loop is
                running, or the overrides are invalid.
        """
        if self._configured:
            logger.debug("LogBatcher already configured, ignoring configure()")
            return

        if self._closed:
            raise ConfigurationError("LogBatcher is closed")

        try:
            asyncio.get_running_loop()
        except RuntimeError as e:
            raise ConfigurationError("configure() must be called from within a running event loop") from e

        updates: dict[str, Any] = {}
        if flush_interval_ms is not None:
            updates["flush_interval_ms"] = flush_interval_ms
        if oversized_policy is not None:
            updates["oversized_policy"] = oversized_policy
        if updates:
            try:
                self._settings = BatcherSettings.model_validate({**self._settings.model_dump(), **updates})
            except ValueError as e:
                raise ConfigurationError(f"Invalid configure() arguments: {e}") from e

        settings = self._settings
        self._limiter = create_limiter(settings.rate_limit)
        self._provisioner = ResourceProvisioner(client, self._limiter)
        self._orchestrator = FlushOrchestrator(
            self._buffer,
            self._provisioner,
            client,
            self._limiter,
            settings.limits,
            settings.diagnostics,
        )
        self._scheduler = FlushScheduler(self._orchestrator.request_flush, self._buffer.has_pending)
        self._scheduler.start(settings.flush_interval_ms)
        self._configured = True

        logger.debug(
            "LogBatcher configured",
            flush_interval_ms=settings.flush_interval_ms,
            oversized_policy=settings.oversized_policy,
            rate_limit_interval_ms=settings.rate_limit.interval_ms,
        )

    def set_flush_interval(self, interval_ms: int) -> None:
        """Replace the periodic flush interval (0 disables it).

        Raises:
            ConfigurationError: If called before configure().
            ValueError: If interval_ms is negative.
        """
        scheduler = self._require_scheduler()
        if interval_ms < 0:
            raise ValueError(f"interval_ms must be >= 0, got {interval_ms}")
        scheduler.restart(interval_ms)
        self._settings = self._settings.model_copy(update={"flush_interval_ms": interval_ms})

    # =========================================================================
    # Logging
    # =========================================================================

    def log_event(self, group: str, stream: str, event: LogEvent) -> RejectedEvent | None:
        """Offer an event for delivery. Never blocks, never suspends.

        The oversized policy runs first. If buffering the (possibly clipped)
        event would reach a batch ceiling, the buffers are drained for a
        background flush before the event is added.

        Returns:
            None when the event was buffered (or printed, under the console
            policy); a RejectedEvent under the error policy.

        Raises:
            ConfigurationError: If called before configure() or after close(),
                or if the event reaches a batch limit while no event loop is
                running (the buffers are left intact and the event is refused).
        """
        orchestrator = self._require_orchestrator()
        settings = self._settings
        destination = Destination(group, stream)

        if exceeds_event_limit(event, settings.limits):
            try:
                admitted = apply_oversized_policy(destination, event, settings.oversized_policy, settings.limits)
            except RejectedEvent as rejected:
                logger.debug("Log event rejected", destination=str(destination), size=rejected.size)
                return rejected
            if admitted is None:
                return None
            event = admitted

        if exceeds_buffer_limit(self._buffer.size_of(destination), event, settings.limits):
            logger.debug("Buffer limit reached, flushing", destination=str(destination))
            try:
                orchestrator.request_flush()
            except RuntimeError as e:
                # Buffers are intact; the event is refused rather than overfilling them
                raise ConfigurationError(
                    "log_event() reached a batch limit outside a running event loop; "
                    "call it from the loop the engine was configured on"
                ) from e

        self._buffer.push(destination, event)
        return None

    def get_logger(
        self,
        group: str,
        stream: str,
        json_default: Callable[[Any], Any] | None = None,
    ) -> StreamLogger:
        """Create a StreamLogger for a destination.

        Registers the destination's buffer and starts provisioning the stream
        in the background so the first flush finds it ready.

        Raises:
            ConfigurationError: If called before configure().
        """
        self._require_orchestrator()
        provisioner = self._provisioner
        assert provisioner is not None  # set together with the orchestrator

        self._buffer.register(Destination(group, stream))
        task = asyncio.get_running_loop().create_task(provisioner.ensure_stream(group, stream))
        self._background.add(task)
        task.add_done_callback(self._on_background_done)
        return StreamLogger(self, group, stream, json_default=json_default)

    def _on_background_done(self, task: asyncio.Task[None]) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            # The first flush to this destination retries provisioning
            logger.warning("Background stream provisioning failed", error=str(error))

    # =========================================================================
    # Flushing and shutdown
    # =========================================================================

    async def flush_now(self) -> None:
        """Drain and deliver everything buffered so far; return when done.

        Also waits for flushes already in progress. A no-op when nothing is
        buffered or pending.

        Raises:
            ConfigurationError: If called before configure().
        """
        orchestrator = self._require_orchestrator(allow_closed=True)
        orchestrator.request_flush()
        await orchestrator.wait_idle()

    async def close(self) -> None:
        """Stop the timer, deliver what is buffered and release the limiter. Idempotent."""
        if self._closed or not self._configured:
            self._closed = True
            return
        self._closed = True

        assert self._scheduler is not None and self._limiter is not None
        await self._scheduler.aclose()
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
        await self.flush_now()
        self._limiter.close()
        logger.debug("LogBatcher closed", **self.health_metrics)

    async def __aenter__(self) -> LogBatcher:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    # =========================================================================
    # Introspection
    # =========================================================================

    @property
    def health_metrics(self) -> dict[str, Any]:
        """Snapshot of engine health.

        Delivery counters come from the orchestrator (zero before configure());
        buffered_events and flush_interval_ms describe the local state.
        """
        metrics: dict[str, Any] = {
            "batches_sent": 0,
            "events_sent": 0,
            "events_dropped": 0,
            "delivery_failures": 0,
            "diagnostics_failed": 0,
            "pending_flushes": 0,
        }
        if self._orchestrator is not None:
            metrics.update(self._orchestrator.health_metrics)
        metrics["buffered_events"] = len(self._buffer)
        metrics["flush_interval_ms"] = self._settings.flush_interval_ms
        return metrics

    def _require_orchestrator(self, *, allow_closed: bool = False) -> FlushOrchestrator:
        if self._orchestrator is None:
            raise ConfigurationError("LogBatcher is not configured; call configure() first")
        if self._closed and not allow_closed:
            raise ConfigurationError("LogBatcher is closed")
        return self._orchestrator

    def _require_scheduler(self) -> FlushScheduler:
        self._require_orchestrator()
        assert self._scheduler is not None
        return self._scheduler
