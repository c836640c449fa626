"""Shared contracts for cross-boundary data types.

This package is a LEAF MODULE with no outbound dependencies to core/engine.
Settings classes are NOT re-exported here - import them from
logbatch.core.config.
"""

from logbatch.contracts.enums import LogLevel, OversizedPolicy, SinkErrorKind
from logbatch.contracts.events import BufferSize, Destination, LogEvent
from logbatch.contracts.limits import (
    FIXED_EVENT_OVERHEAD,
    MAX_BATCH_BYTES,
    MAX_BATCH_COUNT,
    MAX_EVENT_SIZE,
)

__all__ = [
    "FIXED_EVENT_OVERHEAD",
    "MAX_BATCH_BYTES",
    "MAX_BATCH_COUNT",
    "MAX_EVENT_SIZE",
    "BufferSize",
    "Destination",
    "LogEvent",
    "LogLevel",
    "OversizedPolicy",
    "SinkErrorKind",
]
