"""
Fixtures for integration tests.

The app is built around an in-memory store driven by the fake clock from
the top-level conftest, or around the Redis store talking to a dict-backed
client double. Entering the TestClient runs the lifespan, and its portal
lets tests run store coroutines on the app's event loop.
"""
import asyncio
import os
from typing import Dict, List, Optional
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from cache.memory_store import InMemoryExpiringStore
from cache.redis_store import RedisExpiringStore
from config.settings import Settings
from main import create_app


class InMemoryRedis:
    """
    Minimal stand-in for the redis.asyncio client used by RedisExpiringStore.

    TTLs are not tracked; tests expire keys explicitly with expire_now(),
    which removes the key like the server would and returns the name the
    expired notification carries.
    """

    def __init__(self, db: int = 0):
        self.data: Dict[str, str] = {}
        self.connection_pool = _Pool(db)
        self.pubsub_double = _PubSub()

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def getdel(self, key: str) -> Optional[str]:
        return self.data.pop(key, None)

    async def delete(self, *keys: str) -> int:
        return sum(1 for key in keys if self.data.pop(key, None) is not None)

    async def ping(self) -> bool:
        return True

    async def config_get(self, name: str) -> Dict[str, str]:
        return {name: "Ex"}

    async def config_set(self, name: str, value: str) -> bool:
        return True

    def pipeline(self, transaction: bool = True) -> "_Pipeline":
        return _Pipeline(self)

    def pubsub(self) -> "_PubSub":
        return self.pubsub_double

    def expire_now(self, key: str) -> str:
        del self.data[key]
        return key


class _Pool:
    def __init__(self, db: int):
        self.connection_kwargs = {"db": db}


class _Pipeline:
    def __init__(self, client: InMemoryRedis):
        self.client = client
        self.writes: List[tuple] = []

    def set(self, key: str, value: str, px: int) -> None:
        self.writes.append((key, value))

    async def execute(self) -> List[bool]:
        for key, value in self.writes:
            self.client.data[key] = value
        return [True] * len(self.writes)


class _PubSub:
    def __init__(self):
        self.channels: List[str] = []

    async def subscribe(self, *channels: str) -> None:
        self.channels.extend(channels)

    async def get_message(self, ignore_subscribe_messages: bool = False, timeout: float = 0.0):
        await asyncio.sleep(0.01)
        return None

    async def aclose(self) -> None:
        self.channels.clear()


@pytest.fixture
def settings() -> Settings:
    with patch.dict(os.environ, {"LOG_LEVEL": "WARNING"}, clear=True):
        return Settings()


@pytest.fixture
def memory_store(clock) -> InMemoryExpiringStore:
    """Store whose background sweep never runs during a test."""
    return InMemoryExpiringStore(sweep_interval=300, clock=clock)


@pytest.fixture
def app(settings, memory_store):
    return create_app(settings=settings, store=memory_store)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def run(client):
    """Run a coroutine function on the app's event loop."""
    def _run(func, *args):
        return client.portal.call(func, *args)
    return _run


@pytest.fixture
def fake_redis() -> InMemoryRedis:
    return InMemoryRedis()


@pytest.fixture
def redis_store(fake_redis) -> RedisExpiringStore:
    return RedisExpiringStore("redis://localhost:6379/0", key_prefix="demo", client=fake_redis)


@pytest.fixture
def redis_app(settings, redis_store):
    return create_app(settings=settings, store=redis_store)


@pytest.fixture
def redis_client(redis_app):
    with TestClient(redis_app) as test_client:
        yield test_client
