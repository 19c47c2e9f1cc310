"""Default expiry listeners for sessions."""

import logging

from cache.notifier import ExpiryEvent

logger = logging.getLogger(__name__)


def log_session_expired(event: ExpiryEvent) -> None:
    """Log the id and username of an expired session."""
    session = event.value
    logger.info(
        f"session expired. id:{session.id}, username:{session.username}",
        extra={"extra_data": {"session_id": session.id, "username": session.username}}
    )
