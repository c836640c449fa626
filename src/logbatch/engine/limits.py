"""Pure predicates enforcing the sink's size and count ceilings.

Both checks are advisory: the engine acts on them (clip, reject, flush) but
they never mutate anything themselves.
"""

from dataclasses import replace

from logbatch.contracts.events import BufferSize, LogEvent
from logbatch.core.config import LimitSettings


def exceeds_event_limit(event: LogEvent, limits: LimitSettings) -> bool:
    """True when the event's message is longer than one event may be."""
    return event.byte_size > limits.max_event_size


def exceeds_buffer_limit(current: BufferSize, candidate: LogEvent, limits: LimitSettings) -> bool:
    """True when appending candidate would make the buffer reach a batch ceiling.

    Reaching (not only passing) either ceiling counts, so a flush triggered by
    this check always leaves room for the candidate in the next batch.

    Args:
        current: Occupancy of the destination buffer before the append
        candidate: Event about to be appended
        limits: Configured ceilings
    """
    if current.count + 1 >= limits.max_batch_count:
        return True
    return current.bytes + candidate.byte_size + limits.event_overhead >= limits.max_batch_bytes


def clip_message(message: str, max_bytes: int) -> str:
    """Truncate message to at most max_bytes of UTF-8.

    A multi-byte character cut in half at the boundary is dropped rather than
    replaced, so the result never exceeds max_bytes.
    """
    encoded = message.encode("utf-8")
    if len(encoded) <= max_bytes:
        return message
    return encoded[:max_bytes].decode("utf-8", errors="ignore")


def clip_event(event: LogEvent, max_bytes: int) -> LogEvent:
    """Return event with its message clipped to max_bytes (event itself if it fits)."""
    if event.byte_size <= max_bytes:
        return event
    return replace(event, message=clip_message(event.message, max_bytes))
