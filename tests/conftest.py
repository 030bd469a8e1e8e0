"""Global pytest fixtures for the Every Ride Challenge tracker.

This module provides shared fixtures for testing including:
- In-memory slot storage and a controllable clock
- Engine and settings pinned to UTC
- Mock Redis client for backend unit tests
"""

from collections.abc import Generator
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from everyride.challenges.service import ChallengeLifecycleEngine
from everyride.config import EveryRideSettings
from everyride.storage.backends import MemoryKeyValueStore
from tests.factories.storage_factory import FrozenClock

# ===========================================
# CLOCK & SETTINGS FIXTURES
# ===========================================


@pytest.fixture
def clock() -> FrozenClock:
    """Clock frozen at 09:00 UTC on a challenge day."""
    return FrozenClock(datetime(2026, 7, 4, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def settings() -> EveryRideSettings:
    """Settings with the challenge day pinned to UTC midnight."""
    return EveryRideSettings(storage_backend="memory", timezone="UTC")


# ===========================================
# STORAGE FIXTURES
# ===========================================


@pytest.fixture
def kv() -> MemoryKeyValueStore:
    """Empty in-memory slot store."""
    return MemoryKeyValueStore()


@pytest.fixture
def mock_redis_client() -> MagicMock:
    """Create a mock Redis client for unit tests."""
    client = MagicMock()
    client.get = MagicMock(return_value=None)
    client.close = MagicMock()

    pipe = MagicMock()
    pipe.execute = MagicMock(return_value=[])
    client.pipeline = MagicMock(return_value=pipe)
    return client


# ===========================================
# ENGINE FIXTURES
# ===========================================


@pytest.fixture
def engine_factory(kv, settings, clock):
    """Build engines over the shared store, as separate app launches would."""

    def _make() -> ChallengeLifecycleEngine:
        return ChallengeLifecycleEngine(kv, settings, clock=clock)

    return _make


@pytest.fixture
def engine(engine_factory) -> Generator[ChallengeLifecycleEngine, None, None]:
    """Engine over an empty store, already through its startup check."""
    instance = engine_factory()
    instance.startup()
    yield instance
    instance.close()
