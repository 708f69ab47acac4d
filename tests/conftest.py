"""
Isobel Dashboard - Test Fixtures
================================

Shared fixtures for all tests.
"""

import asyncio
import os
import tempfile
from typing import Iterable, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

# Set up test environment before importing modules
os.environ["TESTING"] = "1"
os.environ.setdefault("ISOBEL_LOG_DIR", tempfile.mkdtemp(prefix="isobel-test-logs-"))
os.environ["DISCORD_CLIENT_ID"] = "test-client-id"
os.environ["DISCORD_CLIENT_SECRET"] = "test-client-secret"
os.environ["AUTH_SECRET"] = "test-auth-secret-with-enough-length-for-hs256"
os.environ["AUTH_URL"] = "http://localhost:3001"
os.environ["ENVIRONMENT"] = "development"
os.environ["DATABASE_PATH"] = os.path.join(tempfile.mkdtemp(prefix="isobel-test-db-"), "isobel.db")
os.environ.pop("BOT_HEALTH_URL", None)
os.environ.pop("ERROR_WEBHOOK_URL", None)

from fastapi.testclient import TestClient  # noqa: E402

from isobel.core.config import get_config, reset_config  # noqa: E402
from isobel.core.constants import SESSION_COOKIE_NAME  # noqa: E402
from isobel.core.database import DatabaseManager, close_db, init_db  # noqa: E402
from isobel.auth import (  # noqa: E402
    AuthHandler,
    DiscordOAuthClient,
    reset_auth_handler,
    set_auth_handler,
)
from isobel.api.app import create_app  # noqa: E402
from isobel.api.config import APIConfig  # noqa: E402


# =============================================================================
# Constants
# =============================================================================

GUILD_ID = "123456789012345678"
OTHER_GUILD_ID = "876543210987654321"
DISCORD_ID = "111111111111111111"
OTHER_DISCORD_ID = "222222222222222222"

PERM_NONE = "0"
PERM_ADMINISTRATOR = "8"
PERM_MANAGE_GUILD = "32"

DEFAULT_SETTINGS = {
    "playlistLimit": 50,
    "secondsToWaitAfterQueueEmpties": 30,
    "leaveIfNoListeners": True,
    "queueAddResponseEphemeral": False,
    "autoAnnounceNextSong": False,
    "defaultVolume": 100,
    "defaultQueuePageSize": 10,
    "turnDownVolumeWhenPeopleSpeak": False,
    "turnDownVolumeWhenPeopleSpeakTarget": 20,
}


def run(coro):
    """Run a coroutine from synchronous fixture or test code."""
    return asyncio.run(coro)


def guild(guild_id: str = GUILD_ID, permissions: Optional[str] = PERM_NONE, name: str = "Test Guild") -> dict:
    """A partial guild object as Discord's /users/@me/guilds returns it."""
    return {
        "id": guild_id,
        "name": name,
        "icon": None,
        "owner": False,
        "permissions": permissions,
    }


def auth_headers(token: str) -> dict:
    return {"Cookie": f"{SESSION_COOKIE_NAME}={token}"}


# =============================================================================
# Database
# =============================================================================

@pytest.fixture
def temp_db_path(tmp_path):
    """Create a temporary database path."""
    return tmp_path / "test_isobel.db"


@pytest.fixture
def test_db(temp_db_path):
    """Open the process-wide database on a fresh file."""
    reset_config()
    close_db()
    db = init_db(temp_db_path)
    yield db
    close_db()


async def create_user(
    db: DatabaseManager,
    discord_id: str = DISCORD_ID,
    guilds: Iterable[dict] = (),
    linked: bool = True,
) -> str:
    """
    Create an identity, optionally link Discord and guilds, and start a
    session. Returns the session cookie token.
    """
    user_id = await db.upsert_oauth_user("discord", discord_id, name=f"user-{discord_id[:4]}")
    if linked:
        await db.upsert_discord_user(user_id, {"id": discord_id, "username": f"user-{discord_id[:4]}"})
        if guilds:
            await db.save_user_guilds(discord_id, list(guilds))
    token, _ = await db.create_session(user_id, 3600)
    return token


@pytest.fixture
def seed_user(test_db: DatabaseManager):
    """create_user for synchronous tests."""
    def _seed(**kwargs) -> str:
        return run(create_user(test_db, **kwargs))
    return _seed


@pytest.fixture
def count_settings_rows(test_db: DatabaseManager):
    def _count(guild_id: str = GUILD_ID) -> int:
        row = test_db.fetchone("SELECT COUNT(*) AS n FROM settings WHERE guild_id = ?", (guild_id,))
        return row["n"]
    return _count


# =============================================================================
# Auth
# =============================================================================

@pytest.fixture
def mock_oauth():
    """Discord OAuth client with network calls replaced."""
    real = DiscordOAuthClient("test-client-id", "test-client-secret")
    oauth = MagicMock(spec=DiscordOAuthClient)
    oauth.authorize_url.side_effect = real.authorize_url
    oauth.exchange_code = AsyncMock(return_value={
        "access_token": "discord-access-token",
        "refresh_token": "discord-refresh-token",
        "token_type": "Bearer",
        "scope": "identify guilds",
        "expires_in": 604800,
    })
    oauth.fetch_user = AsyncMock(return_value={
        "id": DISCORD_ID,
        "username": "isobelfan",
        "global_name": "Isobel Fan",
        "discriminator": "0",
        "avatar": "abc123",
    })
    oauth.fetch_guilds = AsyncMock(return_value=[
        guild(GUILD_ID, PERM_ADMINISTRATOR, "Music Lounge"),
        guild(OTHER_GUILD_ID, PERM_NONE, "Other Place"),
    ])
    return oauth


@pytest.fixture
def auth_handler(test_db, mock_oauth):
    """Install an auth handler bound to the test database."""
    reset_auth_handler()
    handler = set_auth_handler(AuthHandler(get_config(), oauth=mock_oauth, db=test_db))
    yield handler
    reset_auth_handler()


# =============================================================================
# HTTP
# =============================================================================

@pytest.fixture
def api_config():
    return APIConfig(allowed_origins=("http://localhost:3001",))


@pytest.fixture
def app(auth_handler, api_config):
    return create_app(api_config)


@pytest.fixture
def client(app):
    """Test client. Lifespan is not run; the test_db fixture owns the database."""
    return TestClient(app, raise_server_exceptions=False)
