"""
Isobel Dashboard - API Middleware
=================================

Middleware components for the FastAPI application.
"""

from .rate_limit import RateLimitMiddleware, RateLimiter, create_rate_limiter
from .logging import LoggingMiddleware
from .security import SecurityMiddleware, BodyLimitMiddleware
from .unhandled import UnhandledErrorMiddleware, internal_error_response

__all__ = [
    "RateLimitMiddleware",
    "RateLimiter",
    "create_rate_limiter",
    "LoggingMiddleware",
    "SecurityMiddleware",
    "BodyLimitMiddleware",
    "UnhandledErrorMiddleware",
    "internal_error_response",
]
