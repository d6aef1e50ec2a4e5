"""
Standardized error responses for the gamification API.

Every error body has the same shape:
{
    "error": {
        "message": "User-friendly error message",
        "code": "ERROR_CODE"
    }
}

Usage:
    from gamification.utils.errors import error_response, ErrorCode

    return error_response("Mission not found", ErrorCode.NOT_FOUND, 404)
"""
import logging
from enum import Enum
from flask import jsonify
from typing import Optional

from .exceptions import GamificationError, NotFoundError, ValidationError, DuplicateError

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Store identification (401)
    STORE_REQUIRED = "STORE_REQUIRED"

    # Admin access (403)
    ADMIN_REQUIRED = "ADMIN_REQUIRED"

    # Validation Errors (400, 422)
    INVALID_REQUEST = "INVALID_REQUEST"
    MISSING_FIELD = "MISSING_FIELD"
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Not Found (404)
    NOT_FOUND = "NOT_FOUND"
    MISSION_NOT_FOUND = "MISSION_NOT_FOUND"
    TASK_NOT_FOUND = "TASK_NOT_FOUND"

    # Conflict (409)
    DUPLICATE_ENTRY = "DUPLICATE_ENTRY"
    STATE_CONFLICT = "STATE_CONFLICT"

    # Server Errors (500)
    INTERNAL_ERROR = "INTERNAL_ERROR"


def error_response(
    message: str,
    code: ErrorCode = ErrorCode.INTERNAL_ERROR,
    status_code: int = 500,
    log_error: bool = True,
    details: Optional[dict] = None
) -> tuple:
    """
    Create a standardized error response.

    Args:
        message: User-friendly error message
        code: Error code from ErrorCode enum (or a raw code string)
        status_code: HTTP status code
        log_error: Whether to log the error
        details: Optional additional details (only logged, not returned to user)

    Returns:
        Tuple of (response, status_code) for Flask
    """
    if log_error and status_code >= 500:
        logger.error(f"API Error [{code}]: {message}", extra={"details": details})
    elif log_error and status_code >= 400:
        logger.warning(f"API Error [{code}]: {message}", extra={"details": details})

    response = {
        "error": {
            "message": message,
            "code": code.value if isinstance(code, ErrorCode) else code
        }
    }

    return jsonify(response), status_code


def bad_request(message: str, code: ErrorCode = ErrorCode.INVALID_REQUEST) -> tuple:
    """400 Bad Request error."""
    return error_response(message, code, 400, log_error=False)


def unauthorized(message: str = "Store identification required", code: ErrorCode = ErrorCode.STORE_REQUIRED) -> tuple:
    """401 Unauthorized error."""
    return error_response(message, code, 401, log_error=False)


def not_found(message: str, code: ErrorCode = ErrorCode.NOT_FOUND) -> tuple:
    """404 Not Found error."""
    return error_response(message, code, 404, log_error=False)


def unprocessable(message: str, code: ErrorCode = ErrorCode.VALIDATION_ERROR) -> tuple:
    """422 Unprocessable Entity error."""
    return error_response(message, code, 422, log_error=False)


def conflict(message: str, code: ErrorCode = ErrorCode.STATE_CONFLICT) -> tuple:
    """409 Conflict error."""
    return error_response(message, code, 409, log_error=False)


def internal_error(message: str = "An unexpected error occurred", details: Optional[dict] = None) -> tuple:
    """500 Internal Server Error."""
    return error_response(message, ErrorCode.INTERNAL_ERROR, 500, log_error=True, details=details)


def from_exception(exc: GamificationError) -> tuple:
    """Translate a service exception into an error response."""
    if isinstance(exc, NotFoundError):
        return error_response(exc.message, exc.code, 404, log_error=False)
    if isinstance(exc, ValidationError):
        return error_response(exc.message, exc.code, 422, log_error=False)
    if isinstance(exc, DuplicateError):
        return error_response(exc.message, exc.code, 409, log_error=False)
    return error_response(exc.message, exc.code, 400)
