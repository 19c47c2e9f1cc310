"""
Expiring key-value store abstraction.

This module defines the contract shared by the in-memory and Redis-backed
stores: per-key TTL, reads that never return expired data, idempotent
deletes, and fan-out of expiry events through an ExpiryNotifier.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Optional

from cache.notifier import ExpiryListener, ExpiryNotifier
from errors.exceptions import InvalidArgumentError


@dataclass
class CacheEntry:
    """A stored value and the clock reading at which it stops being live."""
    key: str
    value: Any
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


def ttl_seconds(ttl: timedelta) -> float:
    """
    Convert a TTL to seconds, rejecting non-positive durations.

    Raises:
        InvalidArgumentError: If the TTL is zero or negative.
    """
    seconds = ttl.total_seconds()
    if seconds <= 0:
        raise InvalidArgumentError(
            "ttl must be a positive duration",
            details={"ttl_seconds": seconds},
        )
    return seconds


class ExpiringStore(ABC):
    """
    Abstract base class for key-value stores with per-entry expiration.

    All data methods are async so that remote backends do not block the
    event loop. Expiry events are published through ``self.notifier``;
    every listener registered with on_expire() receives each expiry
    exactly once, and explicit deletes never produce an event.

    Attributes:
        notifier: The ExpiryNotifier that fans expiry events out to listeners
    """

    def __init__(self, notifier: Optional[ExpiryNotifier] = None):
        self.notifier = notifier or ExpiryNotifier()

    async def start(self) -> None:
        """Start background expiry detection. Safe to call more than once."""

    async def close(self) -> None:
        """Stop background work and release resources."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """
        Retrieve a live value.

        Returns:
            The stored value, or None if the key is absent or expired.

        Raises:
            StoreUnavailableError: If the backing service cannot be reached.
        """

    @abstractmethod
    async def put(self, key: str, value: Any, ttl: timedelta) -> None:
        """
        Store a value that expires after ``ttl``.

        Overwrites any existing entry and its expiration.

        Raises:
            InvalidArgumentError: If ttl is not positive.
            StoreUnavailableError: If the backing service cannot be reached.
        """

    @abstractmethod
    async def delete(self, key: str) -> None:
        """
        Remove a key immediately. Deleting an absent key is not an error.

        Raises:
            StoreUnavailableError: If the backing service cannot be reached.
        """

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check connectivity of the backing service.

        Returns:
            True if the store is usable, False otherwise. Never raises.
        """

    def on_expire(self, callback: ExpiryListener) -> ExpiryListener:
        """Register an expiry listener; returns it so it can be removed later."""
        return self.notifier.subscribe(callback)

    def remove_listener(self, callback: ExpiryListener) -> None:
        self.notifier.unsubscribe(callback)
