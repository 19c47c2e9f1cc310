"""
Session HTTP endpoints.

GET /sessions/{id} reads through the "sessions" lookup cache; POST
/sessions/{id} stores a session for user "user-{id}". Saving or expiring
a session evicts its cached lookup, so reads never serve a session that
is newer or older than the one in the store.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response

from cache.facade import CacheFacade
from cache.notifier import ExpiryEvent
from errors.exceptions import resource_not_found
from session.cache import SessionCache
from session.models import Session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])


class SessionController:
    """
    Session lookups and writes behind the HTTP routes.

    Attributes:
        sessions: Repository holding the sessions
        lookups: Cache of get_session results
    """

    def __init__(self, sessions: SessionCache, lookups: CacheFacade):
        self.sessions = sessions
        self.lookups = lookups

    async def get_session(self, session_id: str) -> Optional[Session]:
        return await self.lookups.invoke(
            self,
            "get_session",
            (session_id,),
            lambda: self.sessions.find(session_id),
            revalidate=self._is_live,
        )

    async def _is_live(self, session: Session) -> bool:
        # A cached lookup must not outlive its session; reading the session
        # key also lets the store notice the expiry on the read path.
        return await self.sessions.find(session.id) is not None

    async def set_session(self, session_id: str) -> Session:
        session = await self.sessions.save(session_id, f"user-{session_id}")
        await self.lookups.evict(self, "get_session", (session_id,))
        return session

    async def on_session_expired(self, event: ExpiryEvent) -> None:
        """Expiry listener dropping the cached lookup of an expired session."""
        await self.lookups.evict(self, "get_session", (event.value.id,))


def get_session_controller(request: Request) -> SessionController:
    return request.app.state.session_controller


@router.get("/{session_id}", response_model=Session)
async def get_session(
    session_id: str,
    controller: SessionController = Depends(get_session_controller),
) -> Session:
    session = await controller.get_session(session_id)
    if session is None:
        raise resource_not_found(
            f"Session {session_id} not found",
            details={"id": session_id},
        )
    return session


@router.post("/{session_id}", status_code=204)
async def set_session(
    session_id: str,
    controller: SessionController = Depends(get_session_controller),
) -> Response:
    await controller.set_session(session_id)
    return Response(status_code=204)
