"""
Isobel Dashboard - Unhandled Error Middleware
=============================================

Turns exceptions no route handled into the generic 500 body.

Added inside the rate limit, security and logging middleware, so the
500 still passes through them and gets their headers.
"""

from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from isobel.core.logger import logger
from isobel.api.errors import ErrorKind, error_response


def internal_error_response(request: Request, exc: Exception) -> Response:
    """Log an unexpected exception and answer without leaking internals."""
    logger.error("Unhandled API Error", [
        ("Path", str(request.url.path)[:80]),
        ("Method", request.method),
        ("Error Type", type(exc).__name__),
        ("Error", str(exc)[:100]),
    ])
    return error_response(ErrorKind.INTERNAL)


class UnhandledErrorMiddleware(BaseHTTPMiddleware):
    """Catch what the exception handlers did not."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            return internal_error_response(request, e)


__all__ = ["UnhandledErrorMiddleware", "internal_error_response"]
