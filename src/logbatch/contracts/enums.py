"""Modes and kinds shared across the engine/client boundary."""

from enum import StrEnum


class OversizedPolicy(StrEnum):
    """What to do with an event whose message exceeds the single-event limit.

    Applied once, when the event is offered to the engine, before buffering.
    """

    CLIP = "clip"
    ERROR = "error"
    CONSOLE = "console"


class SinkErrorKind(StrEnum):
    """Failure kinds a sink client reports.

    Clients classify remote failures exactly once, at the boundary. The engine
    branches on the kind and never re-inspects vendor exceptions.
    """

    ALREADY_EXISTS = "already_exists"
    INVALID_PARAMETER = "invalid_parameter"
    INVALID_SEQUENCE_TOKEN = "invalid_sequence_token"
    OTHER = "other"


class LogLevel(StrEnum):
    """Levels written by StreamLogger into the serialized payload."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
