"""
Shared pytest fixtures and configuration for all tests.
"""
import os
from typing import List
from unittest.mock import MagicMock, AsyncMock

import pytest
from hypothesis import settings, Verbosity, Phase

from cache.memory_store import InMemoryExpiringStore
from cache.notifier import ExpiryEvent

# Hypothesis profiles for property-based tests
settings.register_profile(
    "default",
    max_examples=100,
    verbosity=Verbosity.normal,
    deadline=None,
    print_blob=True,
)

settings.register_profile(
    "ci",
    max_examples=200,
    verbosity=Verbosity.verbose,
    deadline=None,
    print_blob=True,
    derandomize=True,
)

settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    deadline=None,
    print_blob=True,
    phases=[Phase.explicit, Phase.reuse, Phase.generate],
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "default"))


class FakeClock:
    """Manually advanced clock standing in for time.monotonic()."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingListener:
    """Expiry listener that keeps every event it receives."""

    def __init__(self):
        self.events: List[ExpiryEvent] = []

    def __call__(self, event: ExpiryEvent) -> None:
        self.events.append(event)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store(clock: FakeClock) -> InMemoryExpiringStore:
    """In-memory store driven by the fake clock; its sweep task is not started."""
    return InMemoryExpiringStore(sweep_interval=1.0, clock=clock)


@pytest.fixture
def recorder() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def mock_redis() -> MagicMock:
    """Create a mock async Redis client for unit tests."""
    mock = MagicMock()
    mock.get = AsyncMock(return_value=None)
    mock.getdel = AsyncMock(return_value=None)
    mock.delete = AsyncMock(return_value=1)
    mock.ping = AsyncMock(return_value=True)
    mock.config_get = AsyncMock(return_value={"notify-keyspace-events": ""})
    mock.config_set = AsyncMock(return_value=True)
    mock.connection_pool.connection_kwargs = {"db": 0}

    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[True, True])
    mock.pipeline = MagicMock(return_value=pipe)
    return mock
