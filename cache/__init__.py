"""
Expiring key-value cache.

This package provides deterministic key derivation, the ExpiringStore
contract with in-memory and Redis implementations, expiry event fan-out,
and a cache-aside facade for method results.
"""

from cache.keys import derive_call_key, derive_entity_key
from cache.notifier import ExpiryEvent, ExpiryNotifier, NotifierState
from cache.store import CacheEntry, ExpiringStore
from cache.memory_store import InMemoryExpiringStore
from cache.redis_store import RedisExpiringStore
from cache.facade import CacheFacade, DEFAULT_CACHE_TTL

__all__ = [
    "derive_call_key",
    "derive_entity_key",
    "ExpiryEvent",
    "ExpiryNotifier",
    "NotifierState",
    "CacheEntry",
    "ExpiringStore",
    "InMemoryExpiringStore",
    "RedisExpiringStore",
    "CacheFacade",
    "DEFAULT_CACHE_TTL",
]
