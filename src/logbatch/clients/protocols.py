# src/logbatch/clients/protocols.py
"""Protocol definitions for remote log sink clients.

A sink client is the only part of logbatch that talks to the network. The
engine treats it as opaque apart from the failure kinds it reports.
"""

from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from logbatch.contracts.events import LogEvent


@runtime_checkable
class LogSinkClient(Protocol):
    """Protocol for remote log sink clients.

    Error handling:
        Every method signals failure by raising logbatch.errors.SinkError with
        the failure already classified:
        - ALREADY_EXISTS: create_* target exists (the engine treats it as success)
        - INVALID_PARAMETER: the sink rejected the payload itself
        - INVALID_SEQUENCE_TOKEN: put_batch used a stale token; carry the
          expected one in SinkError.expected_sequence_token
        - OTHER: anything else
        Other exception types are tolerated and treated as OTHER.

    Timeouts and transport retries belong to the client; the engine never
    cancels a call in flight.
    """

    async def create_group(self, name: str) -> None:
        """Create a log group."""
        ...

    async def create_stream(self, group: str, name: str) -> None:
        """Create a log stream inside an existing group."""
        ...

    async def put_batch(
        self,
        group: str,
        stream: str,
        events: Sequence["LogEvent"],
        sequence_token: str | None = None,
    ) -> str | None:
        """Deliver a batch of events, ordered ascending by timestamp.

        Args:
            group: Log group name
            stream: Log stream name
            events: Non-empty, timestamp-ordered events within sink limits
            sequence_token: Token returned by the previous put to this
                stream, if any

        Returns:
            The next sequence token, or None if the sink does not use them.
        """
        ...
