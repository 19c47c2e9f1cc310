"""
Expiry event fan-out.

The ExpiryNotifier keeps an ordered observer list and delivers each
expiry event to every registered listener. The notifier has two states:
- IDLE: No listeners; published events have no recipients
- SUBSCRIBED: At least one listener; every event is delivered to all of them

A listener that raises does not stop delivery to the listeners after it.
The failure is wrapped in ListenerError, logged, and swallowed here so
that expiration processing in the store is never disturbed.
"""

import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, List, Union

from errors.exceptions import ListenerError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExpiryEvent:
    """
    Notification that a live entry reached its TTL.

    Attributes:
        key: The key the entry was stored under
        value: The value the entry held when it expired
    """
    key: str
    value: Any


ExpiryListener = Callable[[ExpiryEvent], Union[None, Awaitable[None]]]


class NotifierState(Enum):
    """
    Enumeration of notifier states.

    - IDLE -> SUBSCRIBED: On the first subscribe()
    - SUBSCRIBED -> IDLE: When the last listener is removed
    """
    IDLE = "idle"
    SUBSCRIBED = "subscribed"


def _listener_name(listener: ExpiryListener) -> str:
    return getattr(listener, "__qualname__", None) or repr(listener)


class ExpiryNotifier:
    """
    Ordered observer list for expiry events.

    Listeners may be plain functions or coroutine functions; coroutine
    results are awaited before the next listener runs, so delivery order
    always matches registration order.

    Attributes:
        name: Label used in log records
    """

    def __init__(self, name: str = "expiry"):
        self.name = name
        self._listeners: List[ExpiryListener] = []
        self._state = NotifierState.IDLE

    @property
    def state(self) -> NotifierState:
        return self._state

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: ExpiryListener) -> ExpiryListener:
        """
        Register a listener.

        Args:
            listener: Callable receiving an ExpiryEvent

        Returns:
            The listener, so callers can keep it for unsubscribe()
        """
        self._listeners.append(listener)
        if self._state is NotifierState.IDLE:
            self._transition_to(NotifierState.SUBSCRIBED)
        return listener

    def unsubscribe(self, listener: ExpiryListener) -> None:
        """Remove a listener. Removing an unknown listener is a no-op."""
        try:
            self._listeners.remove(listener)
        except ValueError:
            return
        if not self._listeners:
            self._transition_to(NotifierState.IDLE)

    def unsubscribe_all(self) -> None:
        self._listeners.clear()
        if self._state is not NotifierState.IDLE:
            self._transition_to(NotifierState.IDLE)

    async def publish(self, event: ExpiryEvent) -> int:
        """
        Deliver an event to every registered listener.

        The listener list is snapshotted first, so listeners may
        (un)subscribe while the event is being delivered.

        Args:
            event: The expiry event to deliver

        Returns:
            Number of listeners that handled the event without raising
        """
        listeners = tuple(self._listeners)
        if not listeners:
            logger.debug(
                f"No listeners for expired key {event.key}",
                extra={"extra_data": {"notifier": self.name, "key": event.key}}
            )
            return 0

        delivered = 0
        for listener in listeners:
            try:
                result = listener(event)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception as exc:
                self._report_failure(listener, event, exc)

        return delivered

    def _report_failure(
        self,
        listener: ExpiryListener,
        event: ExpiryEvent,
        exc: Exception,
    ) -> ListenerError:
        name = _listener_name(listener)
        error = ListenerError(listener_name=name, key=event.key)
        error.__cause__ = exc
        logger.error(
            error.message,
            extra={"extra_data": {
                "notifier": self.name,
                "error_code": error.error_code.value,
                "listener": name,
                "key": event.key,
                "error": str(exc),
            }},
            exc_info=exc,
        )
        return error

    def _transition_to(self, new_state: NotifierState) -> None:
        old_state = self._state
        self._state = new_state
        logger.info(
            f"Expiry notifier {self.name} transitioned from {old_state.value} to {new_state.value}",
            extra={"extra_data": {
                "notifier": self.name,
                "old_state": old_state.value,
                "new_state": new_state.value,
            }}
        )
