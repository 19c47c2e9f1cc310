"""
Health check service for the session cache service.

Liveness only reports that the process answers; readiness pings the
backing expiring store with a timeout and reports how long it took.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from cache.store import ExpiringStore

logger = logging.getLogger(__name__)


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class DependencyHealth:
    """
    Health status of a single dependency.

    Attributes:
        name: The name of the dependency (e.g., "store")
        healthy: Whether the dependency is healthy and responding
        response_time_ms: The time taken to check the dependency in milliseconds
        error: Optional error message if the dependency check failed
    """
    name: str
    healthy: bool
    response_time_ms: float
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        result = {
            "name": self.name,
            "healthy": self.healthy,
            "response_time_ms": round(self.response_time_ms, 2),
        }
        if self.error is not None:
            result["error"] = self.error
        return result


@dataclass
class HealthStatus:
    """
    Overall health status of the service.

    Attributes:
        status: "healthy" or "unhealthy"
        timestamp: When the health check was performed (ISO 8601, UTC)
        dependencies: Individual dependency health statuses
    """
    status: str
    timestamp: str
    dependencies: list[DependencyHealth] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "timestamp": self.timestamp,
            "dependencies": [dep.to_dict() for dep in self.dependencies],
        }


class HealthCheckService:
    """
    Checks readiness of the backing expiring store.

    Attributes:
        store: The expiring store to check
        check_timeout: Timeout in seconds for the store check (default: 5.0)
    """

    def __init__(self, store: ExpiringStore, check_timeout: float = 5.0):
        self.store = store
        self.check_timeout = check_timeout

    async def check_liveness(self) -> dict[str, Any]:
        return {"status": "alive", "timestamp": _utc_timestamp()}

    async def check_readiness(self) -> HealthStatus:
        """
        Check the store and aggregate the result.

        Returns:
            HealthStatus: "healthy" when the store answers within the timeout
        """
        store_health = await self._check_store()
        return HealthStatus(
            status="healthy" if store_health.healthy else "unhealthy",
            timestamp=_utc_timestamp(),
            dependencies=[store_health],
        )

    async def _check_store(self) -> DependencyHealth:
        start_time = time.perf_counter()

        try:
            result = await asyncio.wait_for(
                self.store.health_check(),
                timeout=self.check_timeout
            )
        except asyncio.TimeoutError:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            error_msg = f"Store health check timed out after {self.check_timeout} seconds"
            logger.warning(error_msg)
            return DependencyHealth(
                name="store",
                healthy=False,
                response_time_ms=elapsed_ms,
                error=error_msg
            )

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        if result:
            return DependencyHealth(name="store", healthy=True, response_time_ms=elapsed_ms)

        logger.warning(f"Store health check returned False after {elapsed_ms:.2f}ms")
        return DependencyHealth(
            name="store",
            healthy=False,
            response_time_ms=elapsed_ms,
            error="Store health check returned False"
        )
