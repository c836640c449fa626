# tests/unit/core/test_logging_setup.py
"""Tests for structured logging configuration."""

import json
import logging
from collections.abc import Iterator

import pytest
import structlog

from logbatch.core.logging import configure_logging


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    """configure_logging mutates global state; put it back afterwards."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    structlog.reset_defaults()
    root.handlers = handlers
    root.setLevel(level)


class TestLoggingConfig:
    def test_json_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Engine log events are emitted as JSON lines on stderr."""
        configure_logging(json_output=True)

        structlog.get_logger("test").error("Log delivery failure", group="app", stream="web")

        log_line = capsys.readouterr().err.strip().split("\n")[-1]
        data = json.loads(log_line)
        assert data["event"] == "Log delivery failure"
        assert data["group"] == "app"
        assert data["level"] == "error"
        assert "timestamp" in data
        assert "_record" not in data

    def test_console_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(json_output=False)

        structlog.get_logger("test").info("test message", key="value")

        err = capsys.readouterr().err
        assert "test message" in err
        assert not err.strip().startswith("{")

    def test_stdlib_loggers_routed_through_structlog(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(json_output=True)

        logging.getLogger("test.stdlib.module").warning("message from stdlib logger")

        data = json.loads(capsys.readouterr().err.strip().split("\n")[-1])
        assert data["event"] == "message from stdlib logger"
        assert data["level"] == "warning"

    def test_level_filters_debug(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(level="INFO")

        structlog.get_logger("test").debug("hidden")

        assert "hidden" not in capsys.readouterr().err

    def test_aws_sdk_loggers_silenced(self) -> None:
        """boto3/botocore stay at WARNING even in DEBUG mode."""
        configure_logging(level="DEBUG")

        assert logging.getLogger().level == logging.DEBUG
        for name in ("boto3", "botocore", "botocore.hooks", "urllib3"):
            assert logging.getLogger(name).getEffectiveLevel() >= logging.WARNING
