"""
Isobel Dashboard - Request Logging Middleware
=============================================

Logs every request with its status and duration, and tags it with a
request ID returned as X-Request-ID.
"""

import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from isobel.core.logger import logger
from isobel.api.middleware.rate_limit import client_ip


REQUEST_ID_HEADER = "X-Request-ID"

# Polled constantly by load balancers and the dashboard header
QUIET_PATHS = frozenset({"/health", "/api/health"})


class LoggingMiddleware(BaseHTTPMiddleware):
    """Request logging with a per-request ID."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        request.state.request_id = request_id
        start = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            logger.warning("Request Failed", [
                ("ID", request_id),
                ("Method", request.method),
                ("Path", request.url.path[:80]),
                ("Error Type", type(e).__name__),
            ])
            raise

        duration_ms = (time.perf_counter() - start) * 1000
        response.headers[REQUEST_ID_HEADER] = request_id

        details = [
            ("ID", request_id),
            ("Method", request.method),
            ("Path", request.url.path[:80]),
            ("Status", str(response.status_code)),
            ("Duration", f"{duration_ms:.1f}ms"),
            ("IP", client_ip(request)),
        ]
        if response.status_code >= 500:
            logger.warning("Request Errored", details)
        elif request.url.path not in QUIET_PATHS:
            logger.debug("Request", details)

        return response


__all__ = ["LoggingMiddleware", "REQUEST_ID_HEADER"]
