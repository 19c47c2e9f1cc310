"""
Health check module for the session cache service.

This module provides the readiness check of the backing expiring store.
"""

from health.service import (
    HealthCheckService,
    HealthStatus,
    DependencyHealth,
)

__all__ = [
    "HealthCheckService",
    "HealthStatus",
    "DependencyHealth",
]
