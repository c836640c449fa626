# src/logbatch/core/__init__.py
"""Core infrastructure: Configuration, Logging, Rate limiting."""

from logbatch.core.config import (
    BatcherSettings,
    DiagnosticsSettings,
    LimitSettings,
    LoggingSettings,
    RateLimitSettings,
    load_settings,
)
from logbatch.core.logging import configure_logging

__all__ = [
    "BatcherSettings",
    "DiagnosticsSettings",
    "LimitSettings",
    "LoggingSettings",
    "RateLimitSettings",
    "configure_logging",
    "load_settings",
]
