"""
Error handling module for the session cache service.

This module provides structured error handling with:
- ErrorCode enum for standardized error codes
- AppException and the typed cache errors
- Error response models for consistent API responses
- Exception handlers for FastAPI integration
"""

from errors.codes import ErrorCode
from errors.exceptions import (
    AppException,
    InvalidArgumentError,
    ListenerError,
    StoreUnavailableError,
)
from errors.handlers import (
    ErrorResponse,
    handle_app_exception,
    handle_unexpected_exception,
    register_exception_handlers,
)

__all__ = [
    "ErrorCode",
    "AppException",
    "InvalidArgumentError",
    "ListenerError",
    "StoreUnavailableError",
    "ErrorResponse",
    "handle_app_exception",
    "handle_unexpected_exception",
    "register_exception_handlers",
]
