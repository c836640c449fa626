# src/logbatch/engine/provisioner.py
"""Idempotent creation of remote log groups and streams.

The registry remembers what is known to exist remotely, so steady-state
flushes make no create calls at all. Concurrent requests for the same
resource share one in-flight creation; the already-exists tolerance absorbs
races with other processes.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Hashable
from typing import TYPE_CHECKING

import structlog

from logbatch.contracts.enums import SinkErrorKind
from logbatch.errors import ProvisioningError, classify

if TYPE_CHECKING:
    from logbatch.clients.protocols import LogSinkClient
    from logbatch.core.rate_limit import NoOpLimiter, RateLimiter

logger = structlog.get_logger(__name__)


class ResourceProvisioner:
    """Ensures destinations exist remotely before delivery.

    Thread Safety:
        NOT thread-safe. Runs on the engine's event loop only.

    Example:
        provisioner = ResourceProvisioner(client, limiter)
        await provisioner.ensure_stream("app", "web")  # creates group + stream
        await provisioner.ensure_stream("app", "web")  # no remote call
    """

    def __init__(self, client: LogSinkClient, limiter: RateLimiter | NoOpLimiter) -> None:
        self._client = client
        self._limiter = limiter
        self._registry: dict[str, set[str]] = {}
        self._inflight: dict[Hashable, asyncio.Task[None]] = {}

    def is_known(self, group: str, stream: str | None = None) -> bool:
        """True when the group (and stream, if given) is known to exist."""
        streams = self._registry.get(group)
        if streams is None:
            return False
        return stream is None or stream in streams

    async def ensure_group(self, name: str) -> None:
        """Create the group unless it is already known to exist.

        Raises:
            ProvisioningError: If creation failed for any reason other than
                the group already existing.
        """
        if name in self._registry:
            return
        await self._once(("group", name), lambda: self._create_group(name))

    async def ensure_stream(self, group: str, stream: str) -> None:
        """Create the group and then the stream, skipping what already exists.

        Raises:
            ProvisioningError: If either creation failed for any reason other
                than the resource already existing.
        """
        await self.ensure_group(group)
        if stream in self._registry[group]:
            return
        await self._once(("stream", group, stream), lambda: self._create_stream(group, stream))

    async def _once(self, key: Hashable, create: Callable[[], Awaitable[None]]) -> None:
        """Run create() unless an identical creation is already in flight, then await it."""
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(create())
            self._inflight[key] = task
            task.add_done_callback(lambda done: self._forget(key, done))
        # shield: one cancelled waiter must not cancel the creation for the others
        await asyncio.shield(task)

    def _forget(self, key: Hashable, task: asyncio.Task[None]) -> None:
        self._inflight.pop(key, None)
        if not task.cancelled():
            # Waiters re-raise it; this only marks it retrieved
            task.exception()

    async def _create_group(self, name: str) -> None:
        try:
            await self._limiter.submit(self._client.create_group, name)
            logger.debug("createLogGroup", group=name)
        except Exception as e:
            if classify(e) is not SinkErrorKind.ALREADY_EXISTS:
                raise ProvisioningError(name, e) from e
            logger.debug("createLogGroup", group=name, outcome="already_exists")
        self._registry.setdefault(name, set())

    async def _create_stream(self, group: str, stream: str) -> None:
        try:
            await self._limiter.submit(self._client.create_stream, group, stream)
            logger.debug("createLogStream", group=group, stream=stream)
        except Exception as e:
            if classify(e) is not SinkErrorKind.ALREADY_EXISTS:
                raise ProvisioningError(f"{group}/{stream}", e) from e
            logger.debug("createLogStream", group=group, stream=stream, outcome="already_exists")
        self._registry.setdefault(group, set()).add(stream)
