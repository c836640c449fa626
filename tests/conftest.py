# tests/conftest.py
"""Shared test fixtures and helpers.

Fixtures:
- sink: fresh RecordingSinkClient (see tests/fixtures/sink.py)
- fast_settings: BatcherSettings with periodic flushing and throttling off,
  so tests decide exactly when flushes happen

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

import os

import pytest
from hypothesis import Phase, Verbosity, settings

from logbatch.core.config import BatcherSettings, RateLimitSettings
from tests.fixtures.sink import RecordingSinkClient

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def sink() -> RecordingSinkClient:
    """In-memory sink that records every call."""
    return RecordingSinkClient()


@pytest.fixture
def fast_settings() -> BatcherSettings:
    """Manual flushing only, no throttling."""
    return BatcherSettings(flush_interval_ms=0, rate_limit=RateLimitSettings(interval_ms=0))


# =============================================================================
# Hypothesis Configuration
# =============================================================================

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))
