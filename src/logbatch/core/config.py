"""
Configuration schema and loading for logbatch.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.
"""

import os
import re
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from logbatch.contracts.enums import OversizedPolicy
from logbatch.contracts.limits import (
    FIXED_EVENT_OVERHEAD,
    MAX_BATCH_BYTES,
    MAX_BATCH_COUNT,
    MAX_EVENT_SIZE,
)

# Rate limiter names become bucket keys: a letter, then letters, digits or underscores
LIMITER_NAME_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9_]*$")


class LimitSettings(BaseModel):
    """Per-event and per-batch ceilings enforced locally before delivery.

    Defaults mirror the CloudWatch Logs PutLogEvents quotas. Override only to
    target a sink with tighter limits (or to exercise limits in tests).
    """

    model_config = {"frozen": True}

    event_overhead: int = Field(default=FIXED_EVENT_OVERHEAD, ge=0, description="Sink bookkeeping bytes per event")
    max_event_size: int = Field(default=MAX_EVENT_SIZE, gt=0, description="Maximum message bytes for one event")
    max_batch_count: int = Field(default=MAX_BATCH_COUNT, gt=1, description="Maximum events per batch")
    max_batch_bytes: int = Field(default=MAX_BATCH_BYTES, gt=0, description="Maximum batch bytes, overhead included")

    @model_validator(mode="after")
    def validate_event_fits_batch(self) -> "LimitSettings":
        """A single maximum-size event must fit in an otherwise empty batch."""
        if self.max_event_size + self.event_overhead >= self.max_batch_bytes:
            raise ValueError(
                f"max_event_size ({self.max_event_size}) plus event_overhead ({self.event_overhead}) "
                f"must be below max_batch_bytes ({self.max_batch_bytes})"
            )
        return self


class RateLimitSettings(BaseModel):
    """Throttling of outbound remote calls.

    Example YAML:
        rate_limit:
          interval_ms: 1500
    """

    model_config = {"frozen": True}

    interval_ms: int = Field(default=1500, ge=0, description="Minimum spacing between remote calls; 0 disables")
    name: str = Field(default="logbatch_sink", description="Bucket identifier")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Bucket names must match the rate limiter's name pattern."""
        if not LIMITER_NAME_PATTERN.match(v):
            raise ValueError(
                f"Invalid rate limiter name: {v!r}. Name must start with a letter and contain only alphanumeric characters and underscores."
            )
        return v


class DiagnosticsSettings(BaseModel):
    """Reserved destination receiving the engine's own failure reports."""

    model_config = {"frozen": True}

    enabled: bool = Field(default=True, description="Ship failure reports to the sink (always logged locally)")
    group: str = Field(default="logbatch", min_length=1)
    stream: str = Field(default="errors", min_length=1)


class LoggingSettings(BaseModel):
    """Local structlog output of the engine itself."""

    model_config = {"frozen": True}

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    json_output: bool = False


class BatcherSettings(BaseModel):
    """Top-level logbatch configuration.

    Example YAML:
        flush_interval_ms: 1000
        oversized_policy: clip
        rate_limit:
          interval_ms: 1500
        diagnostics:
          group: my-service
          stream: logbatch-errors
    """

    model_config = {"frozen": True}

    flush_interval_ms: int = Field(default=1000, ge=0, description="Periodic flush interval; 0 disables")
    oversized_policy: OversizedPolicy = Field(
        default=OversizedPolicy.CLIP,
        description="Handling of events above limits.max_event_size",
    )
    limits: LimitSettings = Field(default_factory=LimitSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    diagnostics: DiagnosticsSettings = Field(default_factory=DiagnosticsSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def load_settings(config_path: Path) -> BatcherSettings:
    """Load settings from YAML file with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (LOGBATCH_*) - highest priority
    2. Config file
    3. Defaults from Pydantic schema - lowest priority

    Environment variable format: LOGBATCH_RATE_LIMIT__INTERVAL_MS for nested keys.
    LOGBATCH_DEBUG=1 forces the local logging level to DEBUG.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated BatcherSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="LOGBATCH",
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES", "DEBUG"}
    raw_config: dict[str, Any] = {
        k.lower(): _lower_keys(v) for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys
    }

    if os.environ.get("LOGBATCH_DEBUG"):
        raw_config["logging"] = {**raw_config.get("logging", {}), "level": "DEBUG"}

    return BatcherSettings(**raw_config)


def _lower_keys(value: Any) -> Any:
    """Lowercase nested dict keys (Dynaconf uppercases env-provided ones)."""
    if isinstance(value, dict):
        return {str(k).lower(): _lower_keys(v) for k, v in value.items()}
    return value
