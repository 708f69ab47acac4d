"""
Isobel Dashboard - FastAPI Application
======================================

FastAPI application factory and configuration.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from isobel import __version__
from isobel.core.logger import logger
from isobel.core.database import close_db, init_db
from isobel.utils.http import http_session
from isobel.utils.lazy import InitOnce
from isobel.api.config import APIConfig, get_api_config
from isobel.api.errors import APIError, ErrorKind, error_response
from isobel.api.middleware import (
    BodyLimitMiddleware,
    LoggingMiddleware,
    RateLimitMiddleware,
    SecurityMiddleware,
    UnhandledErrorMiddleware,
    create_rate_limiter,
    internal_error_response,
)
from isobel.api.routers import (
    auth_router,
    guilds_router,
    health_router,
    settings_router,
)


API_DESCRIPTION = """
## Isobel Dashboard API

Backend for the Isobel music bot dashboard: Discord sign-in, the guilds
a user belongs to, and per-guild playback settings.

### Authentication

Sign in through `/api/auth/signin/discord`. The session cookie it sets
authenticates every `/api/guilds` request.

### Errors

All errors use one shape:
```json
{"error": "You are not a member of this server"}
```
Validation errors add a `details` list.
"""


# =============================================================================
# Lifespan
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database on startup, release everything on shutdown."""
    logger.tree("API Starting", [
        ("Version", __version__),
    ], emoji="🚀")

    db = init_db()
    db.cleanup_expired_sessions()

    yield

    logger.tree("API Stopping", [], emoji="🛑")
    await http_session.close()
    close_db()


# =============================================================================
# Application Factory
# =============================================================================

def create_app(config: Optional[APIConfig] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: API settings. Defaults to the environment-loaded config.
    """
    config = config or get_api_config()

    app = FastAPI(
        title="Isobel Dashboard API",
        description=API_DESCRIPTION,
        version=__version__,
        docs_url="/api/docs" if config.debug else None,
        redoc_url=None,
        openapi_url="/api/openapi.json" if config.debug else None,
        lifespan=lifespan,
    )
    app.state.config = config

    # ==========================================================================
    # Middleware (order matters - last added = first executed)
    # ==========================================================================

    app.add_middleware(BodyLimitMiddleware, max_bytes=config.max_body_bytes)
    app.add_middleware(UnhandledErrorMiddleware)
    app.add_middleware(RateLimitMiddleware, rate_limiter=create_rate_limiter(config))
    app.add_middleware(SecurityMiddleware, config=config)
    app.add_middleware(LoggingMiddleware)

    # ==========================================================================
    # Exception Handlers
    # ==========================================================================

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError):
        if exc.kind is ErrorKind.INTERNAL:
            logger.error("API Internal Error", [
                ("Path", str(request.url.path)[:80]),
                ("Method", request.method),
                ("Error", exc.message[:100]),
            ])
        return exc.to_response()

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        details = [
            {
                "path": [str(part) for part in error.get("loc", ())],
                "message": error.get("msg", ""),
                "code": error.get("type", ""),
            }
            for error in exc.errors()
        ]
        return error_response(ErrorKind.VALIDATION, "Invalid request", details=details)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        kind = {
            401: ErrorKind.AUTHENTICATION,
            403: ErrorKind.AUTHORIZATION,
            404: ErrorKind.NOT_FOUND,
            413: ErrorKind.PAYLOAD_TOO_LARGE,
            429: ErrorKind.RATE_LIMITED,
        }.get(exc.status_code)
        if kind is None:
            response = error_response(ErrorKind.VALIDATION, str(exc.detail), headers=exc.headers)
            response.status_code = exc.status_code
            return response
        return error_response(kind, str(exc.detail), headers=exc.headers)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Failures in the outer middleware themselves."""
        return internal_error_response(request, exc)

    # ==========================================================================
    # Routers
    # ==========================================================================

    app.include_router(health_router)
    app.include_router(auth_router, prefix="/api")
    app.include_router(guilds_router, prefix="/api")
    app.include_router(settings_router, prefix="/api")

    return app


# =============================================================================
# Process-wide App
# =============================================================================

_app: InitOnce[FastAPI] = InitOnce("App", create_app)


def get_app() -> FastAPI:
    """The app served by uvicorn, built on first use."""
    return _app.get()


def reset_app() -> None:
    _app.reset()


__all__ = ["create_app", "get_app", "reset_app"]
