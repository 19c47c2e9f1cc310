"""HTTP routes of the session cache service."""

from api.sessions import SessionController, router as sessions_router

__all__ = ["SessionController", "sessions_router"]
