"""
Session management module.

This module provides the Session model, the SessionCache repository that
stores sessions with a fixed TTL in an ExpiringStore, and the default
listener that logs expired sessions.
"""

from session.models import Session
from session.cache import SessionCache, DEFAULT_SESSION_TTL, SESSION_NAMESPACE
from session.listeners import log_session_expired

__all__ = [
    "Session",
    "SessionCache",
    "DEFAULT_SESSION_TTL",
    "SESSION_NAMESPACE",
    "log_session_expired",
]
