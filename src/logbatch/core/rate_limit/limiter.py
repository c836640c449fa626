"""Rate limiter wrapper around pyrate-limiter for the asyncio engine."""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, ParamSpec, TypeVar

import structlog
from pyrate_limiter import InMemoryBucket, Limiter, Rate

from logbatch.core.config import LIMITER_NAME_PATTERN

if TYPE_CHECKING:
    from types import TracebackType

logger = structlog.get_logger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

# Upper bound on how long a waiting submit() sleeps between token checks
_MAX_POLL_SECONDS = 0.05

# How long close() waits for the leaker thread to exit
_LEAKER_JOIN_SECONDS = 0.05

_original_excepthook = threading.excepthook

# Leaker threads registered by RateLimiter.close(), tracked by ident so an
# unrelated thread sharing a name is never suppressed
_suppressed_thread_idents: set[int] = set()
_suppressed_lock = threading.Lock()


def _custom_excepthook(args: threading.ExceptHookArgs) -> None:
    """Thread excepthook that swallows pyrate-limiter's leaker cleanup race.

    Once its last bucket is disposed, the Leaker thread can fail an
    ``assert self.clocks`` on its way out. Suppression is one-shot and only
    covers AssertionError from threads registered by close(); everything else
    goes to the original hook.
    """
    thread_ident = args.thread.ident if args.thread else None

    with _suppressed_lock:
        if thread_ident is not None and thread_ident in _suppressed_thread_idents and args.exc_type is AssertionError:
            _suppressed_thread_idents.discard(thread_ident)
            logger.debug(
                "Suppressed expected pyrate-limiter cleanup exception",
                thread_ident=thread_ident,
                thread_name=args.thread.name if args.thread else None,
            )
            return

    _original_excepthook(args)


threading.excepthook = _custom_excepthook


class RateLimiter:
    """Serializes remote calls to at most one per fixed interval.

    Wraps a pyrate-limiter bucket holding a single ``Rate(1, interval_ms)``.
    Callers queue on an asyncio.Lock, which wakes waiters strictly in
    arrival order, so requests run in submission order and none are dropped.
    The lock is held for the duration of the call: at most one call is in
    flight at any time.

    Example:
        limiter = RateLimiter("cloudwatch", interval_ms=1500)
        await limiter.submit(client.put_batch, "group", "stream", events)
        limiter.close()
    """

    def __init__(self, name: str, interval_ms: int) -> None:
        """Initialize rate limiter.

        Args:
            name: Identifier for this rate limiter (used as bucket key).
                Must start with a letter and contain only alphanumeric
                characters and underscores.
            interval_ms: Minimum spacing between calls in milliseconds.
                Must be greater than 0.

        Raises:
            ValueError: If name is invalid or interval_ms is not positive.
        """
        if not LIMITER_NAME_PATTERN.match(name):
            msg = (
                f"Invalid rate limiter name: {name!r}. "
                "Name must start with a letter and contain only "
                "alphanumeric characters and underscores."
            )
            raise ValueError(msg)

        if interval_ms <= 0:
            msg = f"interval_ms must be positive, got {interval_ms}"
            raise ValueError(msg)

        self.name = name
        self.interval_ms = interval_ms
        self._poll_seconds = min(interval_ms / 1000 / 10, _MAX_POLL_SECONDS)
        self._lock = asyncio.Lock()
        self._bucket = InMemoryBucket([Rate(1, interval_ms)])
        # Non-blocking: try_acquire returns False instead of sleeping the loop
        self._limiter = Limiter(self._bucket, raise_when_fail=False, max_delay=None)
        self._closed = False

    async def acquire(self) -> None:
        """Wait (without blocking the event loop) until a token is available."""
        while not self._limiter.try_acquire(self.name):
            await asyncio.sleep(self._poll_seconds)

    async def submit(self, fn: Callable[P, Awaitable[T]], /, *args: P.args, **kwargs: P.kwargs) -> T:
        """Run ``fn(*args, **kwargs)`` once a slot is free.

        Args:
            fn: Coroutine function performing the remote call

        Returns:
            Whatever fn returns; its exceptions propagate unchanged.
        """
        async with self._lock:
            await self.acquire()
            return await fn(*args, **kwargs)

    def close(self) -> None:
        """Dispose the bucket and stop its leak thread. Idempotent."""
        if self._closed:
            return
        self._closed = True

        # Grab the leaker before dispose() deregisters the bucket from it
        leaker = self._limiter.bucket_factory._leaker
        if leaker is not None and leaker.is_alive() and leaker.ident is not None:
            with _suppressed_lock:
                _suppressed_thread_idents.add(leaker.ident)
        else:
            leaker = None

        self._limiter.dispose(self._bucket)

        if leaker is not None:
            leaker.join(timeout=_LEAKER_JOIN_SECONDS)
        logger.debug("Rate limiter closed", name=self.name)

    def __enter__(self) -> RateLimiter:
        """Enter context manager."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit context manager."""
        self.close()


class NoOpLimiter:
    """No-op limiter when throttling is disabled.

    Provides the same interface as RateLimiter. Calls are still serialized
    (one in flight, submission order) but never delayed.
    """

    name = "noop"
    interval_ms = 0

    def __init__(self) -> None:
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """No-op acquire (always succeeds instantly)."""

    async def submit(self, fn: Callable[P, Awaitable[T]], /, *args: P.args, **kwargs: P.kwargs) -> T:
        """Run ``fn`` as soon as earlier submissions finish."""
        async with self._lock:
            return await fn(*args, **kwargs)

    def close(self) -> None:
        """No-op close (nothing to clean up)."""

    def __enter__(self) -> NoOpLimiter:
        """Enter context manager."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit context manager."""
        self.close()
