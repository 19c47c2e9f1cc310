from contextlib import asynccontextmanager
from typing import Optional
import logging

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from api.sessions import SessionController, router as sessions_router
from cache.facade import CacheFacade
from cache.memory_store import InMemoryExpiringStore
from cache.redis_store import RedisExpiringStore
from cache.store import ExpiringStore
from config.settings import ConfigurationError, Settings, get_settings, validate_startup
from errors.handlers import register_exception_handlers
from health.service import HealthCheckService
from middleware.request_id import RequestIDMiddleware
from session.cache import SessionCache
from session.listeners import log_session_expired
from session.models import Session
from telemetry.service import initialize_telemetry

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> ExpiringStore:
    """Create the expiring store selected by settings.store_backend."""
    if settings.store_backend == "redis":
        if not settings.redis_url:
            raise ConfigurationError(
                "Cannot build the redis store",
                missing_fields=["redis_url"],
            )
        return RedisExpiringStore(
            redis_url=settings.redis_url,
            key_prefix=settings.key_prefix,
            timeout=settings.store_timeout,
        )
    return InMemoryExpiringStore(sweep_interval=settings.store_sweep_interval)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[ExpiringStore] = None,
) -> FastAPI:
    """
    Wire the store, session cache, lookup cache and HTTP routes together.

    Args:
        settings: Application settings; loaded from the environment if omitted
        store: Expiring store to use instead of the one settings select
    """
    if settings is None:
        validate_startup()
        settings = get_settings()
    telemetry = initialize_telemetry(settings)
    if store is None:
        store = build_store(settings)

    sessions = SessionCache(store, ttl=settings.session_ttl_delta)
    lookups = CacheFacade(
        store,
        name="sessions",
        ttl=settings.sessions_cache_ttl_delta,
        encode=lambda session: session.model_dump(),
        decode=Session.model_validate,
        telemetry=telemetry,
    )
    controller = SessionController(sessions, lookups)

    sessions.on_expire(log_session_expired)
    sessions.on_expire(controller.on_session_expired)

    health_check_service = HealthCheckService(store, check_timeout=settings.store_timeout)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Starting session cache service",
            extra={"extra_data": {"store_backend": settings.store_backend}}
        )
        await store.start()
        yield
        logger.info("Shutting down session cache service")
        await store.close()

    app = FastAPI(title="Session Cache API", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.session_cache = sessions
    app.state.session_lookups = lookups
    app.state.session_controller = controller

    register_exception_handlers(app)
    app.add_middleware(RequestIDMiddleware)
    app.include_router(sessions_router)

    @app.get("/health/live")
    async def liveness():
        return await health_check_service.check_liveness()

    @app.get("/health/ready")
    async def readiness():
        status = await health_check_service.check_readiness()
        status_code = 200 if status.status == "healthy" else 503
        return JSONResponse(status_code=status_code, content=status.to_dict())

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:create_app", factory=True, host="0.0.0.0", port=8000, log_level="info")
