"""
Isobel Dashboard - API Configuration
====================================

Centralized configuration for the FastAPI service.
"""

from dataclasses import dataclass
from typing import Optional, Tuple
import os

from isobel.core.constants import (
    API_RATE_LIMIT,
    AUTH_RATE_LIMIT,
    BOT_HEALTH_TIMEOUT,
    MAX_BODY_BYTES,
    RATE_LIMIT_WINDOW,
)
from isobel.utils.lazy import InitOnce


@dataclass(frozen=True)
class APIConfig:
    """API configuration settings."""

    # Server
    host: str = "0.0.0.0"
    port: int = 3003
    debug: bool = False

    # CORS
    production: bool = False
    allowed_origins: Tuple[str, ...] = ()

    # Rate Limiting
    rate_limit_requests: int = API_RATE_LIMIT
    auth_rate_limit_requests: int = AUTH_RATE_LIMIT
    rate_limit_window: int = RATE_LIMIT_WINDOW  # seconds

    # Requests
    max_body_bytes: int = MAX_BODY_BYTES
    health_timeout: float = BOT_HEALTH_TIMEOUT


def _allowed_origins() -> Tuple[str, ...]:
    """Dashboard URL plus any extra comma-separated CORS_ORIGINS."""
    origins = []
    for value in (os.getenv("AUTH_URL"), os.getenv("NEXTAUTH_URL")):
        if value:
            origins.append(value.rstrip("/"))
    extra = os.getenv("CORS_ORIGINS", "")
    origins.extend(o.strip().rstrip("/") for o in extra.split(",") if o.strip())
    return tuple(dict.fromkeys(origins))


def load_api_config() -> APIConfig:
    """Load API configuration from environment."""
    return APIConfig(
        host=os.getenv("AUTH_HOST", "0.0.0.0"),
        port=int(os.getenv("AUTH_PORT", "3003")),
        debug=os.getenv("API_DEBUG", "false").lower() == "true",
        production=os.getenv("ENVIRONMENT", "development").strip().lower() == "production",
        allowed_origins=_allowed_origins(),
    )


_config: InitOnce[APIConfig] = InitOnce("APIConfig", load_api_config)


def get_api_config() -> APIConfig:
    """Get the API configuration singleton."""
    return _config.get()


def reset_api_config() -> Optional[APIConfig]:
    """Drop the cached API config so the next call reloads it."""
    return _config.reset()


__all__ = ["APIConfig", "get_api_config", "load_api_config", "reset_api_config"]
