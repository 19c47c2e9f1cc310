"""
Error code catalog for the session cache service.

This module defines all error codes used throughout the application,
covering invalid input, missing resources, backing store failures,
expiry listener failures, and internal errors.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """
    Enumeration of all error codes used in the application.
    
    Each error code maps to a specific HTTP status code and error category:
    - Client errors (4xx): Bad keys, unknown sessions
    - Store errors (5xx): Backing key-value service failures
    - Internal errors (5xx): Listener and server-side issues
    """
    
    # Client errors (4xx)
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    """Empty id or malformed key input (HTTP 400)"""
    
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    """Requested session does not exist or has expired (HTTP 404)"""
    
    # Store errors (5xx)
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    """Backing key-value service unreachable or timed out (HTTP 503)"""
    
    # Internal errors (5xx)
    LISTENER_ERROR = "LISTENER_ERROR"
    """An expiry listener raised while handling an event (HTTP 500)"""
    
    INTERNAL_ERROR = "INTERNAL_ERROR"
    """Unexpected server error (HTTP 500)"""


# Mapping of error codes to their default HTTP status codes
ERROR_CODE_STATUS_MAP: dict[ErrorCode, int] = {
    ErrorCode.INVALID_ARGUMENT: 400,
    ErrorCode.RESOURCE_NOT_FOUND: 404,
    ErrorCode.STORE_UNAVAILABLE: 503,
    ErrorCode.LISTENER_ERROR: 500,
    ErrorCode.INTERNAL_ERROR: 500,
}


def get_default_status_code(error_code: ErrorCode) -> int:
    """
    Get the default HTTP status code for an error code.
    
    Args:
        error_code: The error code to look up
        
    Returns:
        The default HTTP status code for the error code
    """
    return ERROR_CODE_STATUS_MAP.get(error_code, 500)
