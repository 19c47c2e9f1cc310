"""
In-process implementation of the ExpiringStore contract.

Entries live in a dict guarded by an asyncio lock. Expiry is detected two
ways: a background task sweeps the dict every ``sweep_interval`` seconds,
and every read or write checks the touched entry against the clock, so an
expired value is never returned even if the sweep has not run yet.
Whichever path removes an expired entry publishes its ExpiryEvent; removal
happens under the lock, so each expiry is published exactly once.
"""

import asyncio
import logging
import time
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional

from cache.notifier import ExpiryEvent, ExpiryNotifier
from cache.store import CacheEntry, ExpiringStore, ttl_seconds
from errors.exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL = 1.0


class InMemoryExpiringStore(ExpiringStore):
    """
    Dict-backed expiring store for a single process.

    Attributes:
        sweep_interval: Seconds between background expiry sweeps
        clock: Callable returning the current time in seconds; tests
            inject a fake clock to simulate the passage of time
    """

    def __init__(
        self,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        notifier: Optional[ExpiryNotifier] = None,
    ):
        super().__init__(notifier)
        self.sweep_interval = sweep_interval
        self.clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()
        self._sweep_task: Optional[asyncio.Task] = None
        self._closed = False

    async def start(self) -> None:
        """Start the background sweep task."""
        self._closed = False
        if self._sweep_task is None or self._sweep_task.done():
            self._sweep_task = asyncio.create_task(self._sweep_loop())
            logger.info(
                "In-memory store sweep started",
                extra={"extra_data": {"sweep_interval": self.sweep_interval}}
            )

    async def close(self) -> None:
        """Stop sweeping. Every later data call raises StoreUnavailableError."""
        self._closed = True
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
            self._sweep_task = None

    def _ensure_open(self) -> None:
        if self._closed:
            raise StoreUnavailableError("In-memory store is closed")

    async def get(self, key: str) -> Optional[Any]:
        self._ensure_open()
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if not entry.is_expired(self.clock()):
                return entry.value
            del self._entries[key]

        await self._publish_expired([entry])
        return None

    async def put(self, key: str, value: Any, ttl: timedelta) -> None:
        seconds = ttl_seconds(ttl)
        self._ensure_open()
        async with self._lock:
            now = self.clock()
            previous = self._entries.get(key)
            self._entries[key] = CacheEntry(key=key, value=value, expires_at=now + seconds)

        # Overwriting an entry that already ran out still counts as its expiry
        if previous is not None and previous.is_expired(now):
            await self._publish_expired([previous])

    async def delete(self, key: str) -> None:
        self._ensure_open()
        async with self._lock:
            now = self.clock()
            entry = self._entries.pop(key, None)

        if entry is not None and entry.is_expired(now):
            await self._publish_expired([entry])

    async def sweep(self) -> int:
        """
        Remove every expired entry and publish its expiry.

        Returns:
            Number of expirations detected by this sweep
        """
        if self._closed:
            return 0
        async with self._lock:
            now = self.clock()
            expired = [entry for entry in self._entries.values() if entry.is_expired(now)]
            for entry in expired:
                del self._entries[entry.key]

        if expired:
            logger.debug(
                f"Sweep removed {len(expired)} expired entries",
                extra={"extra_data": {"expired_count": len(expired)}}
            )
            await self._publish_expired(expired)
        return len(expired)

    async def health_check(self) -> bool:
        return not self._closed

    def __len__(self) -> int:
        """Number of stored entries, including expired ones not yet swept."""
        return len(self._entries)

    async def _publish_expired(self, entries: List[CacheEntry]) -> None:
        for entry in entries:
            await self.notifier.publish(ExpiryEvent(key=entry.key, value=entry.value))

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            try:
                await self.sweep()
            except Exception as e:
                logger.error(
                    f"Expiry sweep failed: {e}",
                    extra={"extra_data": {"error": str(e)}},
                    exc_info=True,
                )
