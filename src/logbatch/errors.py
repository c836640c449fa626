# src/logbatch/errors.py
"""Exception taxonomy for the log batching engine.

Only ConfigurationError is ever raised to application code. RejectedEvent is
handed back as a value from log_event(). Provisioning and delivery errors are
raised inside the flush path and caught per destination there; they never
escape a flush.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from logbatch.contracts.enums import SinkErrorKind

if TYPE_CHECKING:
    from logbatch.contracts.events import Destination


class LogBatchError(Exception):
    """Base class for all logbatch errors."""


class ConfigurationError(LogBatchError):
    """Raised when the engine is used before configure() or configured wrongly."""


class RejectedEvent(LogBatchError):
    """An oversized event refused under the ``error`` policy.

    Returned (not raised) from LogBatcher.log_event(). Callers that prefer
    exceptions can raise it themselves.

    Attributes:
        destination: Where the event was headed
        size: Message size in bytes
        limit: Maximum allowed message size in bytes
    """

    def __init__(self, destination: Destination, size: int, limit: int) -> None:
        self.destination = destination
        self.size = size
        self.limit = limit
        super().__init__(f"Log event for {destination} exceeds size limit: {size} > {limit} bytes")


class SinkError(LogBatchError):
    """Failure reported by a sink client, already classified by kind.

    Attributes:
        kind: Classified failure kind
        message: Human-readable description from the remote side
        expected_sequence_token: Token the sink expected, for
            INVALID_SEQUENCE_TOKEN failures
    """

    def __init__(
        self,
        kind: SinkErrorKind,
        message: str,
        *,
        expected_sequence_token: str | None = None,
    ) -> None:
        self.kind = kind
        self.message = message
        self.expected_sequence_token = expected_sequence_token
        super().__init__(f"[{kind}] {message}")


class ProvisioningError(LogBatchError):
    """A remote create-group/create-stream call failed for a reason other than already-exists.

    Attributes:
        resource: Name of the group (``group``) or stream (``group/stream``)
        cause: The underlying exception (also chained as __cause__)
    """

    def __init__(self, resource: str, cause: BaseException) -> None:
        self.resource = resource
        self.cause = cause
        super().__init__(f"Create '{resource}' failed: {cause}")


class DeliveryError(LogBatchError):
    """A put-batch call failed.

    Attributes:
        destination: Target of the failed batch
        count: Number of events in the failed batch
        kind: Classified failure kind; OTHER for unclassified exceptions
    """

    def __init__(self, destination: Destination, count: int, kind: SinkErrorKind) -> None:
        self.destination = destination
        self.count = count
        self.kind = kind
        super().__init__(f"Put log events failed for {destination} ({count} events, {kind})")


def classify(error: BaseException) -> SinkErrorKind:
    """Return the kind of a client failure; unknown exceptions are OTHER."""
    if isinstance(error, SinkError):
        return error.kind
    return SinkErrorKind.OTHER
