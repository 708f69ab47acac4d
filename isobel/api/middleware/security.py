"""
Isobel Dashboard - Security Middleware
======================================

Origin policy, security headers and request body size limit.

Origin policy:
    production   only the dashboard URL (and CORS_ORIGINS) may call in
    development  additionally any http://localhost:* or 127.0.0.1:* origin
    Requests without an Origin header (same-origin, curl, proxies) pass.
    A disallowed origin gets 403 {"error": "Origin not allowed"}.
    Preflight OPTIONS requests from allowed origins are answered with 200.
"""

from typing import Callable, Iterable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from isobel.core.logger import logger
from isobel.api.config import APIConfig
from isobel.api.errors import APIError, ErrorKind, error_response


DEV_ORIGIN_PREFIXES = ("http://localhost:", "http://127.0.0.1:")
DEV_ORIGINS = frozenset({"http://localhost", "http://127.0.0.1"})

ALLOW_METHODS = "GET, POST, OPTIONS"
ALLOW_HEADERS = "Content-Type, Authorization"

CONTENT_SECURITY_POLICY = "; ".join([
    "default-src 'self'",
    "script-src 'self' 'unsafe-inline'",
    "style-src 'self' 'unsafe-inline'",
    "img-src 'self' https://cdn.discordapp.com data:",
    "frame-ancestors 'self'",
])

SECURITY_HEADERS = {
    "Content-Security-Policy": CONTENT_SECURITY_POLICY,
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Opener-Policy": "same-origin",
}


def is_origin_allowed(origin: str, allowed: Iterable[str], production: bool) -> bool:
    """Check an Origin header value against the policy."""
    origin = origin.rstrip("/")
    if origin in allowed:
        return True
    if production:
        return False
    return origin.startswith(DEV_ORIGIN_PREFIXES) or origin in DEV_ORIGINS


class SecurityMiddleware(BaseHTTPMiddleware):
    """Origin policy plus security headers on every response."""

    def __init__(self, app, config: APIConfig):
        super().__init__(app)
        self._config = config

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        origin: Optional[str] = request.headers.get("origin")

        if origin and not is_origin_allowed(origin, self._config.allowed_origins, self._config.production):
            logger.warning("Origin Rejected", [
                ("Origin", origin[:80]),
                ("Path", request.url.path[:80]),
            ])
            response = error_response(ErrorKind.AUTHORIZATION, "Origin not allowed")
            self._apply_security_headers(response)
            return response

        if request.method == "OPTIONS":
            response = Response(status_code=200)
        else:
            response = await call_next(request)

        if origin:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Credentials"] = "true"
            response.headers["Access-Control-Allow-Methods"] = ALLOW_METHODS
            response.headers["Access-Control-Allow-Headers"] = ALLOW_HEADERS
            response.headers["Vary"] = "Origin"

        self._apply_security_headers(response)
        return response

    def _apply_security_headers(self, response: Response) -> None:
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)


class BodyLimitMiddleware:
    """
    Reject request bodies over the limit with 413.

    A declared Content-Length over the limit is refused before the app
    runs. Bodies without one (chunked uploads) are counted as they are
    received, and the read that crosses the limit raises
    APIError(PAYLOAD_TOO_LARGE) inside the route.
    """

    def __init__(self, app: ASGIApp, max_bytes: int):
        self.app = app
        self._max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        length = request.headers.get("content-length")
        if length is not None:
            try:
                declared = int(length)
            except ValueError:
                response = error_response(ErrorKind.VALIDATION, "Invalid Content-Length")
                await response(scope, receive, send)
                return
            if declared > self._max_bytes:
                self._log_rejected(request, length)
                await error_response(ErrorKind.PAYLOAD_TOO_LARGE)(scope, receive, send)
                return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self._max_bytes:
                    self._log_rejected(request, str(received))
                    raise APIError(ErrorKind.PAYLOAD_TOO_LARGE)
            return message

        await self.app(scope, limited_receive, send)

    def _log_rejected(self, request: Request, size: str) -> None:
        logger.warning("Request Body Too Large", [
            ("Path", request.url.path[:80]),
            ("Size", size),
            ("Limit", str(self._max_bytes)),
        ])


__all__ = [
    "SecurityMiddleware",
    "BodyLimitMiddleware",
    "is_origin_allowed",
    "SECURITY_HEADERS",
]
