"""
Session repository on top of an ExpiringStore.

Sessions live under "session:<id>" keys with a fixed time-to-live
(60 seconds by default). When a session expires, listeners registered via
SessionCache.on_expire() receive an ExpiryEvent whose value is the expired
Session.
"""

import inspect
import logging
from datetime import timedelta
from typing import Optional

from cache.keys import ENTITY_SEPARATOR, derive_entity_key
from cache.notifier import ExpiryEvent, ExpiryListener
from cache.store import ExpiringStore
from errors.exceptions import InvalidArgumentError
from session.models import Session

logger = logging.getLogger(__name__)

# Default TTL of the "session" keyspace
DEFAULT_SESSION_TTL = timedelta(seconds=60)
SESSION_NAMESPACE = "session"


class SessionCache:
    """
    Session-scoped save/find/evict with a fixed TTL policy.

    Attributes:
        store: Backing expiring store
        ttl: Lifetime applied to every saved session
        namespace: Keyspace holding the sessions
    """

    def __init__(
        self,
        store: ExpiringStore,
        ttl: timedelta = DEFAULT_SESSION_TTL,
        namespace: str = SESSION_NAMESPACE,
    ):
        self.store = store
        self.ttl = ttl
        self.namespace = namespace

    def _key(self, session_id: str) -> str:
        if not session_id:
            raise InvalidArgumentError(
                "Session id must not be empty",
                details={"field": "id"},
            )
        return derive_entity_key(self.namespace, session_id)

    async def save(self, session_id: str, username: str) -> Session:
        """
        Store a session, replacing any live session with the same id.

        Raises:
            InvalidArgumentError: If session_id is empty.
            StoreUnavailableError: If the backing store cannot be reached.
        """
        key = self._key(session_id)
        session = Session(id=session_id, username=username)
        await self.store.put(key, session.model_dump(), self.ttl)
        logger.debug(
            f"Saved session {session_id}",
            extra={"extra_data": {"session_id": session_id, "ttl_seconds": self.ttl.total_seconds()}}
        )
        return session

    async def find(self, session_id: str) -> Optional[Session]:
        """Return the live session for an id, or None if absent or expired."""
        data = await self.store.get(self._key(session_id))
        if data is None:
            return None
        return Session.model_validate(data)

    async def evict(self, session_id: str) -> None:
        """Remove a session. Evicting does not produce an expiry event."""
        await self.store.delete(self._key(session_id))

    def on_expire(self, listener: ExpiryListener) -> ExpiryListener:
        """
        Register a listener for session expiries.

        The listener only sees keys of this cache's namespace, and the
        event value is a Session rather than the stored representation.

        Returns:
            The registered wrapper; pass it to store.remove_listener()
            to unregister.
        """
        prefix = f"{self.namespace}{ENTITY_SEPARATOR}"

        async def session_listener(event: ExpiryEvent) -> None:
            if not event.key.startswith(prefix):
                return
            session = Session.model_validate(event.value)
            result = listener(ExpiryEvent(key=event.key, value=session))
            if inspect.isawaitable(result):
                await result

        session_listener.__qualname__ = getattr(listener, "__qualname__", repr(listener))
        return self.store.on_expire(session_listener)
