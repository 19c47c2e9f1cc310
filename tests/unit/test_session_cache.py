"""
Unit tests for the session repository.

Covers save/find/evict, the fixed 60 second TTL, session expiry events
and id validation.
"""

import asyncio
import logging
from datetime import timedelta

import pytest
from hypothesis import given, strategies as st

from cache.memory_store import InMemoryExpiringStore
from cache.notifier import ExpiryEvent
from errors.exceptions import InvalidArgumentError
from session.cache import DEFAULT_SESSION_TTL, SessionCache
from session.listeners import log_session_expired
from session.models import Session


@pytest.fixture
def sessions(memory_store) -> SessionCache:
    return SessionCache(memory_store)


class TestSaveAndFind:
    """Tests for save, find and evict."""
    
    def test_default_ttl_is_sixty_seconds(self, sessions):
        assert sessions.ttl == DEFAULT_SESSION_TTL == timedelta(seconds=60)
    
    @pytest.mark.asyncio
    async def test_save_then_find(self, sessions):
        saved = await sessions.save("abc", "user-abc")
        found = await sessions.find("abc")
        
        assert saved == Session(id="abc", username="user-abc")
        assert found == saved
    
    @pytest.mark.asyncio
    async def test_sessions_are_stored_under_namespaced_keys(self, sessions, memory_store):
        await sessions.save("abc", "user-abc")
        
        assert await memory_store.get("session:abc") == {"id": "abc", "username": "user-abc"}
    
    @pytest.mark.asyncio
    async def test_find_unknown_id_returns_none(self, sessions):
        assert await sessions.find("nobody") is None
    
    @pytest.mark.asyncio
    async def test_save_replaces_existing_session(self, sessions):
        await sessions.save("abc", "first")
        await sessions.save("abc", "second")
        
        assert (await sessions.find("abc")).username == "second"
    
    @pytest.mark.asyncio
    async def test_evict_then_find_returns_none_without_expiry_event(self, sessions, clock, recorder):
        sessions.on_expire(recorder)
        await sessions.save("abc", "user-abc")
        
        await sessions.evict("abc")
        clock.advance(61)
        await sessions.store.sweep()
        
        assert await sessions.find("abc") is None
        assert recorder.events == []
    
    @pytest.mark.asyncio
    @pytest.mark.parametrize("operation", ["find", "evict"])
    async def test_empty_id_is_rejected(self, sessions, operation):
        with pytest.raises(InvalidArgumentError):
            await getattr(sessions, operation)("")
    
    @pytest.mark.asyncio
    async def test_save_with_empty_id_writes_nothing(self, sessions, memory_store):
        with pytest.raises(InvalidArgumentError):
            await sessions.save("", "user-")
        
        assert len(memory_store) == 0
    
    def test_sessions_are_immutable(self):
        session = Session(id="abc", username="user-abc")
        
        with pytest.raises(Exception):
            session.username = "other"
    
    @given(session_id=st.text(min_size=1), username=st.text())
    def test_save_then_find_round_trip_for_any_id(self, session_id, username):
        async def scenario():
            cache = SessionCache(InMemoryExpiringStore(clock=lambda: 0.0))
            await cache.save(session_id, username)
            return await cache.find(session_id)
        
        found = asyncio.run(scenario())
        
        assert found.id == session_id
        assert found.username == username


class TestExpiry:
    """Session expiry and listener delivery."""
    
    @pytest.mark.asyncio
    async def test_session_expires_after_ttl_with_one_event(self, sessions, clock, recorder):
        sessions.on_expire(recorder)
        await sessions.save("abc", "user-abc")
        
        clock.advance(61)
        
        assert await sessions.find("abc") is None
        await sessions.store.sweep()
        assert len(recorder.events) == 1
        event = recorder.events[0]
        assert event.key == "session:abc"
        assert event.value == Session(id="abc", username="user-abc")
    
    @pytest.mark.asyncio
    async def test_session_is_live_before_ttl(self, sessions, clock):
        await sessions.save("abc", "user-abc")
        clock.advance(59)
        
        assert await sessions.find("abc") is not None
    
    @pytest.mark.asyncio
    async def test_listener_only_sees_session_namespace(self, sessions, memory_store, clock, recorder):
        sessions.on_expire(recorder)
        await memory_store.put("sessions::SessionController_get_session_abc", {"id": "abc"}, timedelta(seconds=1))
        await sessions.save("abc", "user-abc")
        
        clock.advance(61)
        await memory_store.sweep()
        
        assert [e.key for e in recorder.events] == ["session:abc"]
    
    @pytest.mark.asyncio
    async def test_async_listeners_are_awaited(self, sessions, clock):
        received = []
        
        async def listener(event: ExpiryEvent):
            received.append(event.value.id)
        
        sessions.on_expire(listener)
        await sessions.save("abc", "user-abc")
        clock.advance(61)
        await sessions.store.sweep()
        
        assert received == ["abc"]
    
    @pytest.mark.asyncio
    async def test_registered_wrapper_can_be_removed(self, sessions, clock, recorder):
        registered = sessions.on_expire(recorder)
        sessions.store.remove_listener(registered)
        await sessions.save("abc", "user-abc")
        clock.advance(61)
        await sessions.store.sweep()
        
        assert recorder.events == []


class TestLogSessionExpired:
    """Tests for the default logging listener."""
    
    def test_logs_id_and_username(self, caplog):
        event = ExpiryEvent(key="session:abc", value=Session(id="abc", username="user-abc"))
        
        with caplog.at_level(logging.INFO, logger="session.listeners"):
            log_session_expired(event)
        
        assert "session expired. id:abc, username:user-abc" in caplog.messages
