"""
Middleware components for the session cache service.

This module contains FastAPI middleware for request correlation.
"""

from middleware.request_id import RequestIDMiddleware, request_id_var, get_request_id

__all__ = [
    "RequestIDMiddleware",
    "request_id_var",
    "get_request_id",
]
