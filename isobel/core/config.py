"""
Isobel Dashboard - Configuration Module
=======================================

Centralized configuration with environment variable validation.

DESIGN:
    A single source of truth for the secrets and paths the dashboard
    needs, loaded from environment variables once. Validation happens at
    load time, not on every access, and reports every missing variable
    in one error.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from isobel.core.constants import DEFAULT_SESSION_MAX_AGE_DAYS
from isobel.utils.lazy import InitOnce


# =============================================================================
# Configuration Dataclass
# =============================================================================

@dataclass(frozen=True)
class Config:
    """
    Dashboard configuration loaded from environment variables.

    Attributes:
        discord_client_id: OAuth2 client ID of the Discord application.
        discord_client_secret: OAuth2 client secret.
        auth_secret: Secret used to sign OAuth state tokens.
        auth_url: Public base URL of the dashboard (redirect target).
        database_path: SQLite database file.
        bot_health_url: Base URL of the bot's health server.
        environment: "development" or "production".
    """

    # -------------------------------------------------------------------------
    # Required: Discord OAuth
    # -------------------------------------------------------------------------

    discord_client_id: str
    discord_client_secret: str
    auth_secret: str

    # -------------------------------------------------------------------------
    # Optional
    # -------------------------------------------------------------------------

    auth_url: str = "http://localhost:3001"
    database_path: Path = Path("data") / "isobel.db"
    bot_health_url: str = "http://localhost:8080"
    environment: str = "development"
    session_max_age_days: int = DEFAULT_SESSION_MAX_AGE_DAYS
    error_webhook_url: Optional[str] = None

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def uses_secure_cookies(self) -> bool:
        """Cookies get the Secure flag when the public URL is HTTPS."""
        return self.auth_url.startswith("https://")


# =============================================================================
# Validation
# =============================================================================

class ConfigValidationError(Exception):
    """Raised when required configuration is missing or invalid."""


def _parse_int_with_default(value: Optional[str], default: int, name: str, min_val: int = None, max_val: int = None) -> int:
    """
    Parse an optional integer with default and range clamping.

    Invalid values fall back to the default with a warning.
    """
    if not value:
        return default
    from isobel.core.logger import logger
    try:
        parsed = int(value)
    except ValueError:
        logger.warning(f"Config {name}='{value}' invalid, using default {default}")
        return default
    if min_val is not None and parsed < min_val:
        logger.warning(f"Config {name}={parsed} below min {min_val}, using {min_val}")
        return min_val
    if max_val is not None and parsed > max_val:
        logger.warning(f"Config {name}={parsed} above max {max_val}, using {max_val}")
        return max_val
    return parsed


def _validate_url(value: Optional[str], name: str) -> Optional[str]:
    """Return the URL if it looks like http(s), None otherwise."""
    if not value:
        return None
    if not value.startswith(("https://", "http://")):
        from isobel.core.logger import logger
        logger.warning(f"Config {name} invalid URL format, ignoring")
        return None
    return value


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config() -> Config:
    """
    Load and validate configuration from environment variables.

    Raises:
        ConfigValidationError: If any required variable is missing.
    """
    missing = []

    discord_client_id = os.getenv("DISCORD_CLIENT_ID")
    if not discord_client_id:
        missing.append("DISCORD_CLIENT_ID")

    discord_client_secret = os.getenv("DISCORD_CLIENT_SECRET")
    if not discord_client_secret:
        missing.append("DISCORD_CLIENT_SECRET")

    # NEXTAUTH_SECRET is accepted so existing deployments keep working
    auth_secret = os.getenv("AUTH_SECRET") or os.getenv("NEXTAUTH_SECRET")
    if not auth_secret:
        missing.append("AUTH_SECRET")

    if missing:
        raise ConfigValidationError(
            f"Missing required environment variables: {', '.join(missing)}"
        )

    auth_url = (
        _validate_url(os.getenv("AUTH_URL"), "AUTH_URL")
        or _validate_url(os.getenv("NEXTAUTH_URL"), "NEXTAUTH_URL")
        or "http://localhost:3001"
    )

    environment = os.getenv("ENVIRONMENT", "development").strip().lower()
    if environment not in ("development", "production"):
        raise ConfigValidationError(f"Invalid ENVIRONMENT: {environment}")

    return Config(
        discord_client_id=discord_client_id,
        discord_client_secret=discord_client_secret,
        auth_secret=auth_secret,
        auth_url=auth_url.rstrip("/"),
        database_path=Path(os.getenv("DATABASE_PATH", str(Path("data") / "isobel.db"))),
        bot_health_url=os.getenv("BOT_HEALTH_URL", "http://localhost:8080"),
        environment=environment,
        session_max_age_days=_parse_int_with_default(
            os.getenv("SESSION_MAX_AGE_DAYS"), DEFAULT_SESSION_MAX_AGE_DAYS,
            "SESSION_MAX_AGE_DAYS", min_val=1, max_val=365,
        ),
        error_webhook_url=_validate_url(os.getenv("ERROR_WEBHOOK_URL"), "ERROR_WEBHOOK_URL"),
    )


# =============================================================================
# Global Config Instance
# =============================================================================

_config: InitOnce[Config] = InitOnce("Config", load_config)


def get_config() -> Config:
    """
    Get the global configuration, loading it on first use.

    Raises:
        ConfigValidationError: On first call if config is invalid.
    """
    return _config.get()


def reset_config() -> None:
    """Drop the cached config so the next get_config() reloads it."""
    _config.reset()


def validate_and_log_config() -> Config:
    """
    Validate configuration and log a summary at startup.

    Raises:
        ConfigValidationError: If required configuration is missing.
    """
    from isobel.core.logger import logger

    config = get_config()

    if config.error_webhook_url:
        logger.set_webhook(config.error_webhook_url)

    logger.tree("Configuration Validated", [
        ("Required", "✅ All required variables set"),
        ("Environment", config.environment),
        ("Auth URL", config.auth_url),
        ("Database", str(config.database_path)),
        ("Bot Health", config.bot_health_url),
    ], emoji="⚙️")

    return config


__all__ = [
    "Config",
    "ConfigValidationError",
    "load_config",
    "get_config",
    "reset_config",
    "validate_and_log_config",
]
