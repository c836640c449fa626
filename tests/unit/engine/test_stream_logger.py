# tests/unit/engine/test_stream_logger.py
"""Tests for StreamLogger payload formatting."""

import json
from datetime import UTC, datetime
from typing import Any

import pytest

from logbatch.contracts.events import LogEvent
from logbatch.engine.stream_logger import StreamLogger
from logbatch.errors import RejectedEvent


class CapturingBatcher:
    """Stands in for LogBatcher; records log_event() calls."""

    def __init__(self, result: RejectedEvent | None = None) -> None:
        self.calls: list[tuple[str, str, LogEvent]] = []
        self.result = result

    def log_event(self, group: str, stream: str, event: LogEvent) -> RejectedEvent | None:
        self.calls.append((group, stream, event))
        return self.result


def decoded(batcher: CapturingBatcher) -> list[dict[str, Any]]:
    return [json.loads(event.message) for _, _, event in batcher.calls]


class TestStreamLogger:
    @pytest.mark.parametrize(
        ("method", "level"),
        [("debug", "DEBUG"), ("info", "INFO"), ("warn", "WARN"), ("warning", "WARN"), ("error", "ERROR")],
    )
    def test_level_written_into_payload(self, method: str, level: str) -> None:
        batcher = CapturingBatcher()
        log = StreamLogger(batcher, "app", "web")  # type: ignore[arg-type]

        getattr(log, method)({"k": 1})

        assert decoded(batcher) == [{"level": level, "data": {"k": 1}}]

    def test_destination_and_timestamp(self) -> None:
        batcher = CapturingBatcher()
        log = StreamLogger(batcher, "app", "web")  # type: ignore[arg-type]
        before = int(datetime.now(UTC).timestamp() * 1000)

        log.info("hello")

        [(group, stream, event)] = batcher.calls
        assert (group, stream) == ("app", "web")
        assert before - 1 <= event.timestamp <= before + 5_000

    def test_json_default_handles_unserializable_values(self) -> None:
        batcher = CapturingBatcher()
        log = StreamLogger(batcher, "app", "web", json_default=str)  # type: ignore[arg-type]

        log.info({"at": datetime(2024, 1, 2, tzinfo=UTC)})

        assert decoded(batcher)[0]["data"] == {"at": "2024-01-02 00:00:00+00:00"}

    def test_unserializable_without_default_raises(self) -> None:
        log = StreamLogger(CapturingBatcher(), "app", "web")  # type: ignore[arg-type]
        with pytest.raises(TypeError):
            log.info({"obj": object()})

    def test_rejection_is_returned(self) -> None:
        rejection = RejectedEvent(object(), 10, 5)  # type: ignore[arg-type]
        log = StreamLogger(CapturingBatcher(result=rejection), "app", "web")  # type: ignore[arg-type]

        assert log.error("too big") is rejection

    def test_repr(self) -> None:
        log = StreamLogger(CapturingBatcher(), "app", "web")  # type: ignore[arg-type]
        assert repr(log) == "StreamLogger(group='app', stream='web')"
