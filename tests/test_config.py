"""
Isobel Dashboard - Configuration Tests
======================================

Tests for environment loading of the core and API configuration.
"""

from pathlib import Path

import pytest

from isobel.core.config import ConfigValidationError, load_config
from isobel.api.config import load_api_config


@pytest.fixture
def clean_env(monkeypatch):
    """Start from an environment with only the required variables."""
    for name in (
        "AUTH_SECRET", "NEXTAUTH_SECRET", "AUTH_URL", "NEXTAUTH_URL",
        "DATABASE_PATH", "BOT_HEALTH_URL", "ENVIRONMENT",
        "SESSION_MAX_AGE_DAYS", "ERROR_WEBHOOK_URL", "CORS_ORIGINS",
        "AUTH_HOST", "AUTH_PORT", "API_DEBUG",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("DISCORD_CLIENT_ID", "client")
    monkeypatch.setenv("DISCORD_CLIENT_SECRET", "secret")
    monkeypatch.setenv("AUTH_SECRET", "auth-secret")
    return monkeypatch


class TestLoadConfig:
    """Tests for load_config."""

    def test_defaults(self, clean_env):
        """Test optional values fall back to development defaults."""
        config = load_config()

        assert config.discord_client_id == "client"
        assert config.auth_url == "http://localhost:3001"
        assert config.database_path == Path("data") / "isobel.db"
        assert config.bot_health_url == "http://localhost:8080"
        assert config.environment == "development"
        assert config.session_max_age_days == 30
        assert not config.is_production
        assert not config.uses_secure_cookies

    def test_missing_required_listed_together(self, clean_env):
        """Test every missing variable is reported in one error."""
        clean_env.delenv("DISCORD_CLIENT_ID")
        clean_env.delenv("AUTH_SECRET")

        with pytest.raises(ConfigValidationError) as exc_info:
            load_config()

        message = str(exc_info.value)
        assert "DISCORD_CLIENT_ID" in message
        assert "AUTH_SECRET" in message
        assert "DISCORD_CLIENT_SECRET" not in message

    def test_nextauth_secret_accepted(self, clean_env):
        clean_env.delenv("AUTH_SECRET")
        clean_env.setenv("NEXTAUTH_SECRET", "legacy-secret")

        assert load_config().auth_secret == "legacy-secret"

    def test_auth_url_trailing_slash_and_https(self, clean_env):
        """Test the public URL is normalized and HTTPS enables secure cookies."""
        clean_env.setenv("AUTH_URL", "https://dash.example.com/")

        config = load_config()
        assert config.auth_url == "https://dash.example.com"
        assert config.uses_secure_cookies

    def test_invalid_auth_url_falls_back(self, clean_env):
        clean_env.setenv("AUTH_URL", "dash.example.com")
        clean_env.setenv("NEXTAUTH_URL", "https://legacy.example.com")

        assert load_config().auth_url == "https://legacy.example.com"

    def test_invalid_environment(self, clean_env):
        clean_env.setenv("ENVIRONMENT", "staging")

        with pytest.raises(ConfigValidationError, match="ENVIRONMENT"):
            load_config()

    @pytest.mark.parametrize("value, expected", [
        ("7", 7),
        ("0", 1),
        ("1000", 365),
        ("soon", 30),
    ])
    def test_session_max_age_clamped(self, clean_env, value, expected):
        """Test SESSION_MAX_AGE_DAYS is clamped and bad values use the default."""
        clean_env.setenv("SESSION_MAX_AGE_DAYS", value)

        assert load_config().session_max_age_days == expected

    def test_error_webhook_must_be_url(self, clean_env):
        clean_env.setenv("ERROR_WEBHOOK_URL", "not-a-url")

        assert load_config().error_webhook_url is None


class TestLoadAPIConfig:
    """Tests for load_api_config."""

    def test_defaults(self, clean_env):
        config = load_api_config()

        assert config.port == 3003
        assert config.host == "0.0.0.0"
        assert not config.debug
        assert not config.production
        assert config.allowed_origins == ()

    def test_allowed_origins(self, clean_env):
        """Test the dashboard URL and CORS_ORIGINS are merged without duplicates."""
        clean_env.setenv("AUTH_URL", "https://dash.example.com/")
        clean_env.setenv("CORS_ORIGINS", "https://admin.example.com, https://dash.example.com")

        config = load_api_config()
        assert config.allowed_origins == ("https://dash.example.com", "https://admin.example.com")

    def test_production_and_port(self, clean_env):
        clean_env.setenv("ENVIRONMENT", "Production")
        clean_env.setenv("AUTH_PORT", "8000")
        clean_env.setenv("API_DEBUG", "true")

        config = load_api_config()
        assert config.production
        assert config.port == 8000
        assert config.debug
