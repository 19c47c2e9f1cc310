"""
Unit tests for the health check service.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from health.service import DependencyHealth, HealthCheckService, HealthStatus


def _store(health_check):
    store = MagicMock()
    store.health_check = health_check
    return store


class TestDependencyHealth:
    def test_to_dict_rounds_and_omits_missing_error(self):
        health = DependencyHealth(name="store", healthy=True, response_time_ms=1.23456)

        assert health.to_dict() == {
            "name": "store",
            "healthy": True,
            "response_time_ms": 1.23,
        }

    def test_to_dict_includes_error(self):
        health = DependencyHealth(name="store", healthy=False, response_time_ms=0, error="down")

        assert health.to_dict()["error"] == "down"


class TestHealthCheckService:
    @pytest.mark.asyncio
    async def test_liveness_does_not_touch_store(self):
        health_check = AsyncMock(return_value=False)
        service = HealthCheckService(_store(health_check))

        result = await service.check_liveness()

        assert result["status"] == "alive"
        assert result["timestamp"].endswith("Z")
        health_check.assert_not_called()

    @pytest.mark.asyncio
    async def test_readiness_healthy_store(self):
        service = HealthCheckService(_store(AsyncMock(return_value=True)))

        status = await service.check_readiness()

        assert isinstance(status, HealthStatus)
        assert status.status == "healthy"
        assert [dep.name for dep in status.dependencies] == ["store"]
        assert status.dependencies[0].error is None

    @pytest.mark.asyncio
    async def test_readiness_unhealthy_store(self):
        service = HealthCheckService(_store(AsyncMock(return_value=False)))

        status = await service.check_readiness()

        assert status.status == "unhealthy"
        assert status.dependencies[0].error == "Store health check returned False"

    @pytest.mark.asyncio
    async def test_readiness_times_out(self):
        async def hang():
            await asyncio.sleep(10)
            return True

        service = HealthCheckService(_store(hang), check_timeout=0.01)

        status = await service.check_readiness()

        assert status.status == "unhealthy"
        assert "timed out" in status.dependencies[0].error

    @pytest.mark.asyncio
    async def test_readiness_with_closed_memory_store(self, memory_store):
        service = HealthCheckService(memory_store)
        assert (await service.check_readiness()).status == "healthy"

        await memory_store.close()

        assert (await service.check_readiness()).status == "unhealthy"
