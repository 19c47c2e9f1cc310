"""
Redis-backed implementation of the ExpiringStore contract.

Values are stored as JSON strings under "<key_prefix>:<key>" with a
native Redis TTL, so reads can never observe an expired value. Expiry
detection relies on Redis keyspace notifications
(``__keyevent@<db>__:expired`` of the client's own database).

Redis drops the value together with the key, so each put also writes a
"phantom" copy that lives PHANTOM_GRACE_SECONDS longer. When the expired
notification for the key arrives, the phantom is fetched and removed with
GETDEL and its value is published with the ExpiryEvent. Explicit deletes
remove both copies and so never produce an event.
"""

import asyncio
import json
import logging
from datetime import timedelta
from typing import Any, Awaitable, Optional, TypeVar

import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError
from redis.exceptions import TimeoutError as RedisTimeoutError

from cache.notifier import ExpiryEvent, ExpiryNotifier
from cache.store import ExpiringStore, ttl_seconds
from errors.exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")

PHANTOM_SUFFIX = ":phantom"
PHANTOM_GRACE_SECONDS = 300
EXPIRED_EVENTS_CHANNEL = "__keyevent@{db}__:expired"
KEYSPACE_EVENTS_CONFIG = "notify-keyspace-events"


class RedisExpiringStore(ExpiringStore):
    """
    Expiring store on top of an async Redis client.

    Attributes:
        redis_url: Redis connection URL (e.g., "redis://localhost:6379/0")
        key_prefix: Prefix separating this application's keys from others
        timeout: Socket timeout in seconds for every Redis call
        client: Redis async client instance (initialized via start())
    """

    def __init__(
        self,
        redis_url: str,
        key_prefix: str = "demo",
        timeout: float = 5.0,
        notifier: Optional[ExpiryNotifier] = None,
        client: Optional[Any] = None,
    ):
        """
        Initialize the Redis expiring store.

        Args:
            redis_url: Redis connection URL
            key_prefix: Namespace prefix applied to every key
            timeout: Seconds before a Redis call fails with StoreUnavailableError
            notifier: Notifier receiving expiry events; a new one by default
            client: Pre-built client, mainly for tests. When omitted,
                start() creates one from redis_url and close() disposes of it.
        """
        super().__init__(notifier)
        self.redis_url = redis_url
        self.key_prefix = key_prefix
        self.timeout = timeout
        self.client = client
        self._owns_client = client is None
        self._pubsub = None
        self._listener_task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        """
        Connect to Redis and subscribe to expired-key notifications.

        Raises:
            StoreUnavailableError: If Redis cannot be reached.
        """
        if self.client is None:
            self.client = redis.from_url(
                self.redis_url,
                decode_responses=True,
                socket_timeout=self.timeout,
                socket_connect_timeout=self.timeout,
            )

        await self._enable_keyspace_events()

        if self._listener_task is None or self._listener_task.done():
            self._pubsub = self.client.pubsub()
            channel = EXPIRED_EVENTS_CHANNEL.format(db=self._database())
            await self._call("subscribe", self._pubsub.subscribe(channel))
            self._listener_task = asyncio.create_task(self._listen())
            logger.info(
                "Subscribed to Redis expired-key notifications",
                extra={"extra_data": {"channel": channel, "key_prefix": self.key_prefix}}
            )

    async def close(self) -> None:
        """Stop listening for notifications and close the connection."""
        if self._listener_task is not None:
            self._listener_task.cancel()
            try:
                await self._listener_task
            except asyncio.CancelledError:
                pass
            self._listener_task = None

        if self._pubsub is not None:
            await self._pubsub.aclose()
            self._pubsub = None

        if self.client is not None and self._owns_client:
            await self.client.aclose()
            self.client = None

    def _full_key(self, key: str) -> str:
        return f"{self.key_prefix}:{key}"

    def _phantom_key(self, key: str) -> str:
        return f"{self._full_key(key)}{PHANTOM_SUFFIX}"

    def _strip_prefix(self, full_key: str) -> Optional[str]:
        prefix = f"{self.key_prefix}:"
        if not full_key.startswith(prefix):
            return None
        return full_key[len(prefix):]

    def _database(self) -> int:
        return int(self.client.connection_pool.connection_kwargs.get("db", 0))

    def _require_client(self):
        if self.client is None:
            raise StoreUnavailableError(
                "Redis client not connected. Call start() first.",
                details={"redis_url": self.redis_url},
            )
        return self.client

    async def _call(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            return await awaitable
        except (RedisConnectionError, RedisTimeoutError) as e:
            raise StoreUnavailableError(
                f"Redis {operation} failed: {e}",
                details={"operation": operation},
            ) from e

    async def get(self, key: str) -> Optional[Any]:
        client = self._require_client()
        raw = await self._call("get", client.get(self._full_key(key)))
        if raw is None:
            return None
        return json.loads(raw)

    async def put(self, key: str, value: Any, ttl: timedelta) -> None:
        ttl_ms = max(1, int(ttl_seconds(ttl) * 1000))
        client = self._require_client()
        payload = json.dumps(value)

        pipe = client.pipeline(transaction=True)
        pipe.set(self._full_key(key), payload, px=ttl_ms)
        pipe.set(self._phantom_key(key), payload, px=ttl_ms + PHANTOM_GRACE_SECONDS * 1000)
        await self._call("put", pipe.execute())

    async def delete(self, key: str) -> None:
        client = self._require_client()
        await self._call("delete", client.delete(self._full_key(key), self._phantom_key(key)))

    async def health_check(self) -> bool:
        if self.client is None:
            return False

        try:
            result = await self.client.ping()
            return result is True
        except Exception:
            return False

    async def _enable_keyspace_events(self) -> None:
        client = self._require_client()
        try:
            config = await self._call("config_get", client.config_get(KEYSPACE_EVENTS_CONFIG))
        except ResponseError as e:
            logger.warning(
                "CONFIG GET is not permitted; assuming keyspace events are configured server-side",
                extra={"extra_data": {"error": str(e)}}
            )
            return

        current = config.get(KEYSPACE_EVENTS_CONFIG, "") or ""
        if "E" in current and ("x" in current or "A" in current):
            return

        flags = "".join(sorted(set(current) | {"E", "x"}))
        try:
            await self._call("config_set", client.config_set(KEYSPACE_EVENTS_CONFIG, flags))
            logger.info(
                f"Enabled Redis keyspace events: {flags}",
                extra={"extra_data": {"previous": current, "current": flags}}
            )
        except ResponseError as e:
            logger.warning(
                "CONFIG SET is not permitted; expiry events require notify-keyspace-events=Ex",
                extra={"extra_data": {"error": str(e)}}
            )

    async def _listen(self) -> None:
        # Poll with a timeout; a blocking listen() would trip the socket timeout when idle
        while True:
            try:
                message = await self._pubsub.get_message(
                    ignore_subscribe_messages=True, timeout=self.timeout
                )
                if message is not None and message.get("type") == "message":
                    await self._dispatch(message["data"])
            except (RedisConnectionError, RedisTimeoutError) as e:
                logger.error(
                    f"Lost Redis notification subscription: {e}",
                    extra={"extra_data": {"error": str(e)}}
                )
                await asyncio.sleep(self.timeout)
            except StoreUnavailableError as e:
                logger.error(e.message, extra={"extra_data": e.to_dict()})
                await asyncio.sleep(self.timeout)
            except Exception as e:
                logger.error(
                    f"Redis notification loop failed: {e}",
                    extra={"extra_data": {"error": str(e)}},
                    exc_info=True,
                )
                await asyncio.sleep(self.timeout)

    async def _dispatch(self, full_key: str) -> None:
        """Handle one notification; a bad message must not stop the ones after it."""
        try:
            await self.handle_expired_key(full_key)
        except StoreUnavailableError:
            raise
        except Exception as e:
            logger.error(
                f"Failed to handle expiry of {full_key}: {e}",
                extra={"extra_data": {"key": full_key, "error": str(e)}},
                exc_info=True,
            )

    async def handle_expired_key(self, full_key: str) -> bool:
        """
        Publish the expiry of one Redis key.

        Args:
            full_key: Prefixed key name from the expired notification

        Returns:
            True if an ExpiryEvent was published, False if the key is not
            one of this store's keys or its phantom copy is already gone.
        """
        if full_key.endswith(PHANTOM_SUFFIX):
            return False
        key = self._strip_prefix(full_key)
        if key is None:
            return False

        client = self._require_client()
        raw = await self._call("getdel", client.getdel(self._phantom_key(key)))
        if raw is None:
            logger.debug(
                f"No phantom copy for expired key {key}",
                extra={"extra_data": {"key": key}}
            )
            return False

        await self.notifier.publish(ExpiryEvent(key=key, value=json.loads(raw)))
        return True
