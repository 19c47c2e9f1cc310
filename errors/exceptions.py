"""
Exception classes for the session cache service.

This module provides the AppException base class, the typed exceptions
raised by the cache core (StoreUnavailableError, InvalidArgumentError,
ListenerError) and the resource_not_found factory used by the HTTP layer.
"""

from typing import Any, Optional

from errors.codes import ErrorCode, get_default_status_code


class AppException(Exception):
    """
    Base exception class for all application-specific errors.
    
    This exception provides structured error information including:
    - error_code: A standardized error code from the ErrorCode enum
    - message: A human-readable error message
    - status_code: The HTTP status code to return
    - details: Optional additional context (e.g., the offending key)
    
    Example:
        raise AppException(
            error_code=ErrorCode.INVALID_ARGUMENT,
            message="Session id must not be empty",
            details={"field": "id"}
        )
    """
    
    def __init__(
        self,
        error_code: ErrorCode,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[dict[str, Any]] = None
    ):
        """
        Initialize an AppException.
        
        Args:
            error_code: The error code from the ErrorCode enum
            message: A human-readable error message
            status_code: The HTTP status code (defaults to the error code's default)
            details: Optional dictionary with additional error context
        """
        self.error_code = error_code
        self.message = message
        self.status_code = status_code or get_default_status_code(error_code)
        self.details = details
        super().__init__(message)
    
    def to_dict(self) -> dict[str, Any]:
        """
        Convert the exception to a dictionary for JSON serialization.
        
        Returns:
            Dictionary containing error_code, message, and details
        """
        result = {
            "error_code": self.error_code.value,
            "message": self.message,
        }
        if self.details is not None:
            result["details"] = self.details
        return result
    
    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(error_code={self.error_code.value!r}, "
            f"message={self.message!r}, status_code={self.status_code}, "
            f"details={self.details!r})"
        )


class StoreUnavailableError(AppException):
    """
    The backing key-value service is unreachable or timed out.
    
    Raised by ExpiringStore implementations and propagated unchanged to
    the caller; the store never retries on its own.
    """
    
    def __init__(
        self,
        message: str = "Backing store unavailable",
        details: Optional[dict[str, Any]] = None
    ):
        super().__init__(ErrorCode.STORE_UNAVAILABLE, message, details=details)


class InvalidArgumentError(AppException):
    """Rejected input (empty id, malformed key parts) detected before any I/O."""
    
    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None
    ):
        super().__init__(ErrorCode.INVALID_ARGUMENT, message, details=details)


class ListenerError(AppException):
    """
    An expiry listener raised while handling an event.
    
    The notifier logs and swallows this error so the remaining listeners
    still receive the event. The original exception is kept as __cause__.
    """
    
    def __init__(
        self,
        listener_name: str,
        key: str,
        message: Optional[str] = None
    ):
        self.listener_name = listener_name
        self.key = key
        super().__init__(
            ErrorCode.LISTENER_ERROR,
            message or f"Expiry listener {listener_name} failed for key {key}",
            details={"listener": listener_name, "key": key},
        )


# Convenience factory functions for common error types

def resource_not_found(
    message: str,
    details: Optional[dict[str, Any]] = None
) -> AppException:
    """Create a resource not found exception."""
    return AppException(
        error_code=ErrorCode.RESOURCE_NOT_FOUND,
        message=message,
        details=details
    )
