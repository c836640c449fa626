"""
logbatch: client-side batching and delivery of log events to a
rate- and size-limited log sink (CloudWatch Logs).

Application code logs without ever blocking; the engine buffers per
(group, stream), enforces the sink's limits locally and ships batches in the
background, splitting and retrying on failure.
"""

from logbatch.clients import CloudWatchLogsClient, LogSinkClient
from logbatch.contracts import Destination, LogEvent, OversizedPolicy, SinkErrorKind
from logbatch.core.config import BatcherSettings, load_settings
from logbatch.engine import LogBatcher, StreamLogger
from logbatch.errors import (
    ConfigurationError,
    DeliveryError,
    LogBatchError,
    ProvisioningError,
    RejectedEvent,
    SinkError,
)

__version__ = "0.1.0"

__all__ = [
    "BatcherSettings",
    "CloudWatchLogsClient",
    "ConfigurationError",
    "DeliveryError",
    "Destination",
    "LogBatchError",
    "LogBatcher",
    "LogEvent",
    "LogSinkClient",
    "OversizedPolicy",
    "ProvisioningError",
    "RejectedEvent",
    "SinkError",
    "SinkErrorKind",
    "StreamLogger",
    "__version__",
    "load_settings",
]
