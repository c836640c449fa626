"""Value objects that flow between the engine, its buffers and sink clients.

Events are immutable (frozen) so a buffered event can never change under a
batch that has already been captured for delivery.
"""

from dataclasses import dataclass, field
from typing import NamedTuple


@dataclass(frozen=True, slots=True)
class LogEvent:
    """A single timestamped log line.

    Attributes:
        timestamp: Milliseconds since the Unix epoch
        message: Log text; its UTF-8 length is fixed at construction
        byte_size: UTF-8 byte length of message (derived, not compared)
    """

    timestamp: int
    message: str
    byte_size: int = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "byte_size", len(self.message.encode("utf-8")))

    def to_wire(self) -> dict[str, object]:
        """Shape expected by PutLogEvents ``logEvents`` entries."""
        return {"timestamp": self.timestamp, "message": self.message}


@dataclass(frozen=True, slots=True)
class Destination:
    """A (group, stream) pair identifying one buffer and one remote stream."""

    group: str
    stream: str

    def __str__(self) -> str:
        return f"{self.group}/{self.stream}"


class BufferSize(NamedTuple):
    """Current occupancy of one destination buffer.

    ``bytes`` includes the fixed per-event overhead for every buffered event.
    """

    count: int
    bytes: int
