"""Oversized-message policy, applied once when an event is offered.

The policy runs before the event reaches any buffer. Nothing downstream
(buffers, batching, delivery) ever sees an event above the single-event
limit, except through the retry path's own clipping.
"""

import json

import structlog

from logbatch.contracts.enums import OversizedPolicy
from logbatch.contracts.events import Destination, LogEvent
from logbatch.core.config import LimitSettings
from logbatch.engine.limits import clip_event
from logbatch.errors import RejectedEvent

logger = structlog.get_logger(__name__)


def apply_oversized_policy(
    destination: Destination,
    event: LogEvent,
    policy: OversizedPolicy,
    limits: LimitSettings,
) -> LogEvent | None:
    """Resolve an oversized event according to policy.

    Args:
        destination: Where the event was headed
        event: An event for which exceeds_event_limit() is true
        policy: Configured oversized-message policy
        limits: Configured ceilings

    Returns:
        The event to buffer (clipped) for CLIP, or None when the event must
        not be buffered (CONSOLE).

    Raises:
        RejectedEvent: Under the ERROR policy.
    """
    match policy:
        case OversizedPolicy.CLIP:
            clipped = clip_event(event, limits.max_event_size)
            logger.debug(
                "Oversized log event clipped",
                destination=str(destination),
                original_size=event.byte_size,
                clipped_size=clipped.byte_size,
            )
            return clipped
        case OversizedPolicy.ERROR:
            raise RejectedEvent(destination, event.byte_size, limits.max_event_size)
        case OversizedPolicy.CONSOLE:
            _emit_to_console(destination, event)
            return None
    raise ValueError(f"Unknown oversized policy: {policy!r}")


def _emit_to_console(destination: Destination, event: LogEvent) -> None:
    """Write the event to local output, decoded as JSON where possible."""
    try:
        payload: object = json.loads(event.message)
    except ValueError:
        payload = event.message
    logger.info(
        "Oversized log event",
        destination=str(destination),
        timestamp=event.timestamp,
        size=event.byte_size,
        payload=payload,
    )
