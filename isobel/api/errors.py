"""
Isobel Dashboard - API Error System
===================================

Closed set of error kinds and the single exception that carries them.

Every failure the API reports is an APIError tagged with an ErrorKind.
The kind decides the HTTP status; the message and optional details form
the body:

    {"error": "Invalid settings", "details": {...}}
"""

from enum import Enum
from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_413_REQUEST_ENTITY_TOO_LARGE,
    HTTP_429_TOO_MANY_REQUESTS,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_503_SERVICE_UNAVAILABLE,
)


# =============================================================================
# Error Kinds
# =============================================================================

class ErrorKind(str, Enum):
    """Every way a request can fail."""

    AUTHENTICATION = "AUTHENTICATION"
    AUTHORIZATION = "AUTHORIZATION"
    VALIDATION = "VALIDATION"
    NOT_FOUND = "NOT_FOUND"
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"
    RATE_LIMITED = "RATE_LIMITED"
    UPSTREAM_UNAVAILABLE = "UPSTREAM_UNAVAILABLE"
    INTERNAL = "INTERNAL"


# =============================================================================
# Status Codes & Default Messages
# =============================================================================

ERROR_STATUS_CODES: Dict[ErrorKind, int] = {
    ErrorKind.AUTHENTICATION: HTTP_401_UNAUTHORIZED,
    ErrorKind.AUTHORIZATION: HTTP_403_FORBIDDEN,
    ErrorKind.VALIDATION: HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: HTTP_404_NOT_FOUND,
    ErrorKind.PAYLOAD_TOO_LARGE: HTTP_413_REQUEST_ENTITY_TOO_LARGE,
    ErrorKind.RATE_LIMITED: HTTP_429_TOO_MANY_REQUESTS,
    ErrorKind.UPSTREAM_UNAVAILABLE: HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.INTERNAL: HTTP_500_INTERNAL_SERVER_ERROR,
}

ERROR_MESSAGES: Dict[ErrorKind, str] = {
    ErrorKind.AUTHENTICATION: "Unauthorized",
    ErrorKind.AUTHORIZATION: "Forbidden",
    ErrorKind.VALIDATION: "Invalid request",
    ErrorKind.NOT_FOUND: "Not found",
    ErrorKind.PAYLOAD_TOO_LARGE: "Request body too large",
    ErrorKind.RATE_LIMITED: "Too many requests, please try again later",
    ErrorKind.UPSTREAM_UNAVAILABLE: "Service unavailable",
    ErrorKind.INTERNAL: "Internal server error",
}

_missing = [kind.value for kind in ErrorKind if kind not in ERROR_STATUS_CODES or kind not in ERROR_MESSAGES]
if _missing:
    raise RuntimeError(f"ErrorKind without status or message: {', '.join(_missing)}")


# =============================================================================
# API Error Exception
# =============================================================================

class APIError(Exception):
    """
    The one exception type route code raises.

    Usage:
        raise APIError(ErrorKind.AUTHENTICATION)
        raise APIError(ErrorKind.VALIDATION, "Invalid guild ID")
        raise APIError(ErrorKind.VALIDATION, "Invalid settings", details={...})
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: Optional[str] = None,
        details: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.kind = kind
        self.message = message or ERROR_MESSAGES[kind]
        self.details = details
        self.headers = headers
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return ERROR_STATUS_CODES[self.kind]

    def to_response(self) -> JSONResponse:
        return error_response(self.kind, self.message, self.details, self.headers)


# =============================================================================
# Helper Functions
# =============================================================================

def error_response(
    kind: ErrorKind,
    message: Optional[str] = None,
    details: Optional[Any] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """
    Create a JSON error response without raising an exception.

    Useful in exception handlers and middleware, which cannot raise.
    """
    content: Dict[str, Any] = {"error": message or ERROR_MESSAGES[kind]}
    if details is not None:
        content["details"] = details

    return JSONResponse(
        status_code=ERROR_STATUS_CODES[kind],
        content=content,
        headers=headers,
    )


def unauthorized() -> APIError:
    """Shorthand for 401 errors."""
    return APIError(ErrorKind.AUTHENTICATION)


def forbidden(message: Optional[str] = None) -> APIError:
    """Shorthand for 403 errors."""
    return APIError(ErrorKind.AUTHORIZATION, message)


def bad_request(message: Optional[str] = None, details: Optional[Any] = None) -> APIError:
    """Shorthand for 400 errors."""
    return APIError(ErrorKind.VALIDATION, message, details=details)


def not_found(message: Optional[str] = None) -> APIError:
    """Shorthand for 404 errors."""
    return APIError(ErrorKind.NOT_FOUND, message)


__all__ = [
    "ErrorKind",
    "ERROR_MESSAGES",
    "ERROR_STATUS_CODES",
    "APIError",
    "error_response",
    "unauthorized",
    "forbidden",
    "bad_request",
    "not_found",
]
