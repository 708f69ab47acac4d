"""
Isobel Dashboard - Rate Limiting Middleware
===========================================

Token bucket rate limiting per client IP.

Limits:
    /api/auth/signin, /callback, /signout   5 per 15 minutes
    everything else under /api              100 per 15 minutes
    /health, /api/health                    not limited
"""

import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Tuple

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from isobel.core.logger import logger
from isobel.api.config import APIConfig, get_api_config
from isobel.api.errors import ErrorKind, error_response


EXEMPT_PATHS = frozenset({"/health", "/api/health"})


def client_ip(request: Request) -> str:
    """First X-Forwarded-For hop, then X-Real-IP, then the socket peer."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else "unknown"


# =============================================================================
# Token Bucket
# =============================================================================

@dataclass
class TokenBucket:
    """Refills continuously at refill_rate up to capacity; starts full."""

    capacity: int
    tokens: float = field(default=0)
    last_update: float = field(default_factory=time.monotonic)
    refill_rate: float = 1.0  # tokens per second

    def __post_init__(self):
        self.tokens = float(self.capacity)

    def consume(self, tokens: int = 1) -> bool:
        now = time.monotonic()
        self.tokens = min(self.capacity, self.tokens + (now - self.last_update) * self.refill_rate)
        self.last_update = now

        if self.tokens >= tokens:
            self.tokens -= tokens
            return True
        return False

    @property
    def retry_after(self) -> float:
        """Seconds until a token is available."""
        if self.tokens >= 1:
            return 0
        return (1 - self.tokens) / self.refill_rate


# =============================================================================
# Rate Limiter
# =============================================================================

class RateLimiter:
    """
    Per-IP rate limiting with per-prefix limits.

    Each limit prefix is its own bucket, so exhausting sign-in attempts
    does not lock a client out of the settings API.
    """

    def __init__(self, default_limit: int, default_window: int):
        self._default_limit = default_limit
        self._default_window = default_window
        self._buckets: Dict[str, TokenBucket] = {}
        self._prefix_limits: Dict[str, Tuple[int, int]] = {}  # prefix -> (limit, window)
        self._last_cleanup = time.monotonic()
        self._cleanup_interval = 300

    def set_limit(self, prefix: str, limit: int, window: int) -> None:
        """Set a custom limit for every path starting with `prefix`."""
        self._prefix_limits[prefix] = (limit, window)

    def _get_limit_for_path(self, path: str) -> Tuple[str, int, int]:
        """Returns (bucket scope, limit, window) for a path."""
        for prefix, (limit, window) in self._prefix_limits.items():
            if path == prefix or path.startswith(prefix.rstrip("/") + "/"):
                return prefix, limit, window
        return "default", self._default_limit, self._default_window

    def _cleanup_stale_buckets(self) -> None:
        """Drop buckets idle long enough to have refilled completely."""
        now = time.monotonic()
        if now - self._last_cleanup < self._cleanup_interval:
            return

        self._last_cleanup = now
        stale_keys = [
            key for key, bucket in self._buckets.items()
            if now - bucket.last_update > bucket.capacity / bucket.refill_rate
        ]

        for key in stale_keys:
            del self._buckets[key]

        if stale_keys:
            logger.debug("Rate Limit Cleanup", [
                ("Removed", str(len(stale_keys))),
                ("Remaining", str(len(self._buckets))),
            ])

    def check(self, ip: str, path: str) -> Tuple[bool, Optional[float], int, int]:
        """
        Check if a request should be allowed.

        Returns:
            Tuple of (allowed, retry_after, remaining, limit)
        """
        self._cleanup_stale_buckets()

        scope, limit, window = self._get_limit_for_path(path)
        key = f"ip:{ip}:{scope}"

        bucket = self._buckets.get(key)
        if bucket is None:
            bucket = self._buckets[key] = TokenBucket(
                capacity=limit,
                refill_rate=limit / window,
            )

        allowed = bucket.consume()

        return (
            allowed,
            bucket.retry_after if not allowed else None,
            int(bucket.tokens),
            limit,
        )


def create_rate_limiter(config: Optional[APIConfig] = None) -> RateLimiter:
    """Build a limiter with the API and auth limits from config."""
    config = config or get_api_config()
    limiter = RateLimiter(
        default_limit=config.rate_limit_requests,
        default_window=config.rate_limit_window,
    )
    for prefix in ("/api/auth/signin", "/api/auth/callback", "/api/auth/signout"):
        limiter.set_limit(prefix, config.auth_rate_limit_requests, config.rate_limit_window)
    return limiter


# =============================================================================
# Middleware
# =============================================================================

class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    FastAPI middleware for rate limiting.

    Adds rate limit headers to responses:
    - X-RateLimit-Limit: Maximum requests allowed
    - X-RateLimit-Remaining: Requests remaining in window
    - Retry-After: Seconds to wait (only on 429)
    """

    def __init__(self, app, rate_limiter: RateLimiter):
        super().__init__(app)
        self._limiter = rate_limiter

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if path in EXEMPT_PATHS or not path.startswith("/api/") or request.method == "OPTIONS":
            return await call_next(request)

        ip = client_ip(request)
        allowed, retry_after, remaining, limit = self._limiter.check(ip, path)

        if not allowed:
            logger.warning("Rate Limit Exceeded", [
                ("IP", ip),
                ("Path", path[:80]),
                ("Retry After", f"{retry_after:.1f}s"),
            ])
            return error_response(
                ErrorKind.RATE_LIMITED,
                headers={
                    "Retry-After": str(max(1, int(retry_after or 1))),
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": "0",
                },
            )

        response = await call_next(request)

        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(remaining)

        return response


__all__ = ["RateLimitMiddleware", "RateLimiter", "TokenBucket", "client_ip", "create_rate_limiter"]
