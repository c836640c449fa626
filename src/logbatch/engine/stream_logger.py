# src/logbatch/engine/stream_logger.py
"""Per-destination convenience logger.

Serializes ``{"level": ..., "data": payload}`` as the event message and hands
it to LogBatcher.log_event().
"""

from __future__ import annotations

import json
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from logbatch.contracts.enums import LogLevel
from logbatch.contracts.events import LogEvent

if TYPE_CHECKING:
    from logbatch.engine.batcher import LogBatcher
    from logbatch.errors import RejectedEvent


class StreamLogger:
    """Logger bound to one (group, stream) destination.

    Obtain one through LogBatcher.get_logger(); the batcher registers the
    destination's buffer and provisions the stream in the background.

    Example:
        logger = batcher.get_logger("my-service", "api")
        logger.info({"path": "/health", "status": 200})
    """

    def __init__(
        self,
        batcher: LogBatcher,
        group: str,
        stream: str,
        json_default: Callable[[Any], Any] | None = None,
    ) -> None:
        """Initialize the logger.

        Args:
            batcher: Engine receiving the events
            group: Log group name
            stream: Log stream name
            json_default: Fallback serializer for values json can't encode
                (passed to json.dumps as ``default``)
        """
        self.group = group
        self.stream = stream
        self._batcher = batcher
        self._json_default = json_default

    def _log(self, level: LogLevel, data: Any) -> RejectedEvent | None:
        message = json.dumps({"level": level.value, "data": data}, default=self._json_default)
        return self._batcher.log_event(self.group, self.stream, LogEvent(int(time.time() * 1000), message))

    def debug(self, data: Any) -> RejectedEvent | None:
        return self._log(LogLevel.DEBUG, data)

    def info(self, data: Any) -> RejectedEvent | None:
        return self._log(LogLevel.INFO, data)

    def warn(self, data: Any) -> RejectedEvent | None:
        return self._log(LogLevel.WARN, data)

    warning = warn

    def error(self, data: Any) -> RejectedEvent | None:
        return self._log(LogLevel.ERROR, data)

    def __repr__(self) -> str:
        return f"StreamLogger(group={self.group!r}, stream={self.stream!r})"
