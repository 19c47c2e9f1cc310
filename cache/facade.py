"""
Method-level cache-aside wrapper.

CacheFacade sits in front of an expensive or repeated lookup: it derives
a call key from (type, method, arguments), returns the cached result on a
hit, and on a miss runs the lookup and stores its result for the facade's
TTL. Concurrent misses for the same key may both compute; only the result
write is bounded to one per miss.
"""

import functools
import inspect
import logging
from datetime import timedelta
from typing import Any, Awaitable, Callable, Optional, Sequence, Union

from cache.keys import derive_call_key
from cache.store import ExpiringStore

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL = timedelta(minutes=3)

Compute = Callable[[], Union[Any, Awaitable[Any]]]
Revalidate = Callable[[Any], Awaitable[bool]]


def _identity(value: Any) -> Any:
    return value


def _type_name(target: Any) -> str:
    if isinstance(target, str):
        return target
    if isinstance(target, type):
        return target.__name__
    return type(target).__name__


class CacheFacade:
    """
    Named cache of method results backed by an ExpiringStore.

    Keys have the form "<name>::<Type>_<method>_<args...>", so several
    facades can share one store without colliding.

    Attributes:
        store: Backing expiring store
        name: Cache name, e.g. "sessions"
        ttl: Lifetime of every cached result
        encode: Converts a result into the stored representation
        decode: Converts a stored representation back into a result
        hits: Number of lookups served from the cache
        misses: Number of lookups that had to compute
    """

    def __init__(
        self,
        store: ExpiringStore,
        name: str = "sessions",
        ttl: timedelta = DEFAULT_CACHE_TTL,
        encode: Callable[[Any], Any] = _identity,
        decode: Callable[[Any], Any] = _identity,
        telemetry: Optional[Any] = None,
    ):
        self.store = store
        self.name = name
        self.ttl = ttl
        self.encode = encode
        self.decode = decode
        self.telemetry = telemetry
        self.hits = 0
        self.misses = 0

    def key_for(self, target: Any, method: str, args: Sequence[Any] = ()) -> str:
        return f"{self.name}::{derive_call_key(_type_name(target), method, args)}"

    async def invoke(
        self,
        target: Any,
        method: str,
        args: Sequence[Any],
        compute: Compute,
        revalidate: Optional[Revalidate] = None,
    ) -> Any:
        """
        Return the cached result of ``target.method(*args)`` or compute it.

        A result of None is returned but not cached, since a cached None
        could not be told apart from a miss. If ``compute`` raises or is
        cancelled, nothing is written.

        Args:
            target: Object, class, or type name owning the method
            method: Method name
            args: Positional arguments of the call
            compute: Zero-argument callable producing the result; may
                return an awaitable
            revalidate: Optional check run on a hit with the decoded
                result; when it returns False the entry is dropped and
                the call is treated as a miss

        Returns:
            The cached or freshly computed result
        """
        key = self.key_for(target, method, args)

        cached = await self.store.get(key)
        if cached is not None:
            result = self.decode(cached)
            if revalidate is None or await revalidate(result):
                self.hits += 1
                self._record("cache.hit", key)
                return result
            await self.store.delete(key)
            logger.debug(
                f"Dropped stale cache entry {key}",
                extra={"extra_data": {"cache": self.name, "key": key}}
            )

        self.misses += 1
        self._record("cache.miss", key)

        result = compute()
        if inspect.isawaitable(result):
            result = await result

        if result is not None:
            await self.store.put(key, self.encode(result), self.ttl)
        return result

    async def evict(self, target: Any, method: str, args: Sequence[Any] = ()) -> None:
        """Drop one cached call result."""
        await self.store.delete(self.key_for(target, method, args))

    def cacheable(self, func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        """
        Decorate an async method so its calls go through invoke().

        The owning instance's class name, the method name and the
        positional arguments form the key.
        """
        @functools.wraps(func)
        async def wrapper(instance: Any, *args: Any) -> Any:
            return await self.invoke(
                instance,
                func.__name__,
                args,
                lambda: func(instance, *args),
            )

        return wrapper

    def _record(self, metric: str, key: str) -> None:
        logger.debug(f"{metric} {key}", extra={"extra_data": {"cache": self.name, "key": key}})
        if self.telemetry is not None:
            self.telemetry.record_metric(metric, 1, tags={"cache": self.name})
