# src/logbatch/engine/buffer.py
"""Per-destination event buffers with running size totals.

Key design decisions:
- Structured Destination keys: no string separator that a name could contain
- Running byte totals: size_of() is O(1), not a sum over the buffer
- drain_all() is synchronous: with a single event loop, nothing can push
  between the snapshot and the clear
"""

from operator import attrgetter

import structlog

from logbatch.contracts.events import BufferSize, Destination, LogEvent
from logbatch.contracts.limits import FIXED_EVENT_OVERHEAD

logger = structlog.get_logger(__name__)

_by_timestamp = attrgetter("timestamp")


class EventBuffer:
    """Ordered pending events per (group, stream) destination.

    Buffers are created lazily on first push (or by register()) and are
    cleared, never removed, by drain_all().

    Thread Safety:
        NOT thread-safe. All access happens on the engine's event loop.

    Example:
        buffer = EventBuffer()
        buffer.push(Destination("app", "web"), LogEvent(1700000000000, "hello"))
        for destination, events in buffer.drain_all():
            ...
    """

    def __init__(self, event_overhead: int = FIXED_EVENT_OVERHEAD) -> None:
        """Initialize an empty buffer set.

        Args:
            event_overhead: Bytes added to each event's message size when
                computing buffer byte totals.
        """
        self._event_overhead = event_overhead
        self._events: dict[Destination, list[LogEvent]] = {}
        self._bytes: dict[Destination, int] = {}

    def register(self, destination: Destination) -> None:
        """Create an empty buffer for destination if it has none."""
        if destination not in self._events:
            self._events[destination] = []
            self._bytes[destination] = 0

    def push(self, destination: Destination, event: LogEvent) -> None:
        """Append event to the destination's buffer."""
        self.register(destination)
        self._events[destination].append(event)
        self._bytes[destination] += event.byte_size + self._event_overhead

    def size_of(self, destination: Destination) -> BufferSize:
        """Current event count and byte total (overhead included) for destination."""
        events = self._events.get(destination)
        if events is None:
            return BufferSize(0, 0)
        return BufferSize(len(events), self._bytes[destination])

    def has_pending(self) -> bool:
        """True when any destination holds at least one event."""
        return any(self._events.values())

    def drain_all(self) -> list[tuple[Destination, list[LogEvent]]]:
        """Snapshot and clear every non-empty buffer in one step.

        Each snapshot is sorted ascending by timestamp. sorted() is stable,
        so events with equal timestamps keep their submission order.

        Returns:
            (destination, events) pairs in buffer creation order.
        """
        drained: list[tuple[Destination, list[LogEvent]]] = []
        for destination, events in self._events.items():
            if not events:
                continue
            drained.append((destination, sorted(events, key=_by_timestamp)))
            self._events[destination] = []
            self._bytes[destination] = 0

        if drained:
            logger.debug(
                "Buffers drained",
                destinations=len(drained),
                events=sum(len(events) for _, events in drained),
            )
        return drained

    @property
    def destinations(self) -> list[Destination]:
        """All destinations with a buffer, empty or not."""
        return list(self._events)

    def __len__(self) -> int:
        """Total number of buffered events across destinations."""
        return sum(len(events) for events in self._events.values())
