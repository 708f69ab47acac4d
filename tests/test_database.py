"""
Isobel Dashboard - Database Tests
=================================

Tests for the SQLite database manager and its mixins.
"""

import asyncio
import sqlite3
import time

import pytest
import pytest_asyncio

from isobel.core.database import SETTINGS_DEFAULTS, DatabaseManager
from isobel.core.database.guilds import membership_id

from tests.conftest import (
    DISCORD_ID,
    GUILD_ID,
    OTHER_DISCORD_ID,
    OTHER_GUILD_ID,
    PERM_ADMINISTRATOR,
    PERM_NONE,
    guild,
)


@pytest_asyncio.fixture
async def member_db(test_db):
    """Database with one linked Discord user who belongs to GUILD_ID."""
    user_id = await test_db.upsert_oauth_user("discord", DISCORD_ID, name="Tester")
    await test_db.upsert_discord_user(user_id, {"id": DISCORD_ID, "username": "tester"})
    await test_db.save_user_guilds(DISCORD_ID, [guild(GUILD_ID, PERM_ADMINISTRATOR)])
    test_db.seed_user_id = user_id
    return test_db


# =============================================================================
# Schema
# =============================================================================

class TestSchema:
    """Tests for table creation."""

    def test_tables_created(self, test_db):
        tables = {
            row["name"] for row in test_db.fetchall(
                "SELECT name FROM sqlite_master WHERE type = 'table'"
            )
        }
        assert {
            "users", "accounts", "sessions", "discord_users",
            "discord_guilds", "guild_members", "settings",
        } <= tables

    def test_reopen_is_idempotent(self, test_db, temp_db_path):
        """Test opening the same file again keeps existing data."""
        test_db.execute(
            "INSERT INTO users (id, name, created_at, updated_at) VALUES (?, ?, ?, ?)",
            ("u1", "Someone", 0, 0),
        )
        other = DatabaseManager(temp_db_path)
        try:
            assert other.fetchone("SELECT name FROM users WHERE id = 'u1'")["name"] == "Someone"
        finally:
            other.close()

    def test_wal_and_foreign_keys(self, test_db):
        assert test_db.fetchone("PRAGMA journal_mode")[0].lower() == "wal"
        assert test_db.fetchone("PRAGMA foreign_keys")[0] == 1


# =============================================================================
# Identity
# =============================================================================

class TestIdentity:
    """Tests for users, accounts and Discord profiles."""

    @pytest.mark.asyncio
    async def test_same_account_same_user(self, test_db):
        """Test signing in twice with one Discord account keeps one identity."""
        first = await test_db.upsert_oauth_user("discord", DISCORD_ID, name="Old Name")
        second = await test_db.upsert_oauth_user(
            "discord", DISCORD_ID, name="New Name",
            tokens={"access_token": "new-token"},
        )

        assert first == second
        user = test_db.fetchone("SELECT name FROM users WHERE id = ?", (first,))
        assert user["name"] == "New Name"
        account = test_db.fetchone("SELECT access_token FROM accounts WHERE user_id = ?", (first,))
        assert account["access_token"] == "new-token"

    @pytest.mark.asyncio
    async def test_different_accounts_different_users(self, test_db):
        first = await test_db.upsert_oauth_user("discord", DISCORD_ID)
        second = await test_db.upsert_oauth_user("discord", OTHER_DISCORD_ID)
        assert first != second

    @pytest.mark.asyncio
    async def test_discord_profile_refreshed(self, test_db):
        """Test a second link updates the profile instead of duplicating it."""
        user_id = await test_db.upsert_oauth_user("discord", DISCORD_ID)
        await test_db.upsert_discord_user(user_id, {"id": DISCORD_ID, "username": "before"})
        await test_db.upsert_discord_user(user_id, {"id": DISCORD_ID, "username": "after", "avatar": "a_1"})

        profile = await test_db.get_discord_user(user_id)
        assert profile["id"] == DISCORD_ID
        assert profile["username"] == "after"
        assert profile["avatar"] == "a_1"
        assert test_db.fetchone("SELECT COUNT(*) FROM discord_users")[0] == 1

    @pytest.mark.asyncio
    async def test_unlinked_user_has_no_profile(self, test_db):
        user_id = await test_db.upsert_oauth_user("discord", DISCORD_ID)
        assert await test_db.get_discord_user(user_id) is None


# =============================================================================
# Guilds & Memberships
# =============================================================================

class TestGuilds:
    """Tests for guild and membership storage."""

    @pytest.mark.asyncio
    async def test_membership_saved(self, member_db):
        membership = await member_db.get_membership(GUILD_ID, DISCORD_ID)

        assert membership["id"] == membership_id(GUILD_ID, DISCORD_ID)
        assert membership["permissions"] == PERM_ADMINISTRATOR

    @pytest.mark.asyncio
    async def test_non_member(self, member_db):
        assert await member_db.get_membership(OTHER_GUILD_ID, DISCORD_ID) is None

    @pytest.mark.asyncio
    async def test_find_membership_by_identity(self, member_db):
        """Test the guard lookup goes from internal user ID to membership."""
        membership = await member_db.find_membership(member_db.seed_user_id, GUILD_ID)

        assert membership["user_id"] == DISCORD_ID
        assert membership["permissions"] == PERM_ADMINISTRATOR
        assert await member_db.find_membership(member_db.seed_user_id, OTHER_GUILD_ID) is None

    @pytest.mark.asyncio
    async def test_find_membership_unlinked_identity(self, member_db):
        user_id = await member_db.upsert_oauth_user("discord", OTHER_DISCORD_ID)

        assert await member_db.find_membership(user_id, GUILD_ID) is None

    @pytest.mark.asyncio
    async def test_resave_refreshes_permissions(self, member_db):
        """Test the next sign-in overwrites stale permissions."""
        await member_db.save_user_guilds(DISCORD_ID, [guild(GUILD_ID, PERM_NONE, "Renamed")])

        membership = await member_db.get_membership(GUILD_ID, DISCORD_ID)
        assert membership["permissions"] == PERM_NONE
        assert member_db.fetchone("SELECT COUNT(*) FROM guild_members")[0] == 1
        assert member_db.fetchone("SELECT name FROM discord_guilds WHERE id = ?", (GUILD_ID,))["name"] == "Renamed"

    @pytest.mark.asyncio
    async def test_integer_permissions_stored_as_text(self, member_db):
        await member_db.save_user_guilds(DISCORD_ID, [guild(OTHER_GUILD_ID, 32)])

        membership = await member_db.get_membership(OTHER_GUILD_ID, DISCORD_ID)
        assert membership["permissions"] == "32"

    @pytest.mark.asyncio
    async def test_user_guilds_in_saved_order(self, member_db):
        await member_db.save_user_guilds(DISCORD_ID, [guild(OTHER_GUILD_ID, PERM_NONE, "Second")])

        guilds = await member_db.get_user_guilds(DISCORD_ID)
        assert [g["id"] for g in guilds] == [GUILD_ID, OTHER_GUILD_ID]
        assert guilds[1] == {"id": OTHER_GUILD_ID, "name": "Second", "icon": None, "permissions": PERM_NONE}

    @pytest.mark.asyncio
    async def test_failed_save_is_atomic(self, member_db):
        """Test one bad guild rolls back the whole batch."""
        with pytest.raises(KeyError):
            await member_db.save_user_guilds(DISCORD_ID, [
                guild(OTHER_GUILD_ID, PERM_NONE),
                {"name": "No ID"},
            ])

        assert await member_db.get_membership(OTHER_GUILD_ID, DISCORD_ID) is None

    @pytest.mark.asyncio
    async def test_remove_guild_cascades(self, member_db):
        """Test deleting a guild removes its memberships and settings."""
        await member_db.get_settings(GUILD_ID)

        assert await member_db.remove_guild(GUILD_ID) is True
        assert await member_db.get_membership(GUILD_ID, DISCORD_ID) is None
        assert member_db.fetchone("SELECT COUNT(*) FROM settings")[0] == 0
        assert await member_db.remove_guild(GUILD_ID) is False


# =============================================================================
# Settings
# =============================================================================

class TestSettings:
    """Tests for get-or-create and partial updates."""

    @pytest.mark.asyncio
    async def test_first_access_creates_defaults(self, member_db):
        settings = await member_db.get_settings(GUILD_ID)

        assert settings["guild_id"] == GUILD_ID
        for column, default in SETTINGS_DEFAULTS.items():
            assert settings[column] == default
            assert type(settings[column]) is type(default)
        assert settings["created_at"] == settings["updated_at"]

    @pytest.mark.asyncio
    async def test_second_access_returns_same_row(self, member_db):
        first = await member_db.get_settings(GUILD_ID)
        second = await member_db.get_settings(GUILD_ID)
        assert first == second

    @pytest.mark.asyncio
    async def test_concurrent_first_access_one_row(self, member_db, count_settings_rows):
        """Test 50 concurrent first reads create exactly one row."""
        results = await asyncio.gather(*(member_db.get_settings(GUILD_ID) for _ in range(50)))

        assert count_settings_rows() == 1
        assert all(result == results[0] for result in results)

    @pytest.mark.asyncio
    async def test_concurrent_first_access_across_connections(self, member_db, temp_db_path, count_settings_rows):
        """Test racing first reads through separate connections still create one row."""
        managers = [member_db] + [DatabaseManager(temp_db_path) for _ in range(3)]
        try:
            results = await asyncio.gather(*(
                managers[i % len(managers)].get_settings(GUILD_ID) for i in range(50)
            ))
        finally:
            for manager in managers[1:]:
                manager.close()

        assert count_settings_rows() == 1
        assert {result["created_at"] for result in results} == {results[0]["created_at"]}

    @pytest.mark.asyncio
    async def test_unknown_guild_returns_none(self, test_db, count_settings_rows):
        """Test settings for a guild that no longer exists are not created."""
        assert await test_db.get_settings(OTHER_GUILD_ID) is None
        assert count_settings_rows(OTHER_GUILD_ID) == 0

    @pytest.mark.asyncio
    async def test_partial_update(self, member_db):
        """Test only the given columns change and updated_at moves forward."""
        before = await member_db.get_settings(GUILD_ID)
        time.sleep(0.01)

        after = await member_db.update_settings(GUILD_ID, {
            "default_volume": 55,
            "auto_announce_next_song": True,
        })

        assert after["default_volume"] == 55
        assert after["auto_announce_next_song"] is True
        assert after["playlist_limit"] == before["playlist_limit"]
        assert after["leave_if_no_listeners"] is True
        assert after["created_at"] == before["created_at"]
        assert after["updated_at"] > before["updated_at"]

    @pytest.mark.asyncio
    async def test_update_creates_row(self, member_db, count_settings_rows):
        """Test updating before any read starts from the defaults."""
        settings = await member_db.update_settings(GUILD_ID, {"playlist_limit": 120})

        assert settings["playlist_limit"] == 120
        assert settings["default_volume"] == 100
        assert count_settings_rows() == 1

    @pytest.mark.asyncio
    async def test_empty_update_touches_timestamp(self, member_db):
        before = await member_db.get_settings(GUILD_ID)
        time.sleep(0.01)

        after = await member_db.update_settings(GUILD_ID, {})

        assert after["updated_at"] > before["updated_at"]
        assert {k: after[k] for k in SETTINGS_DEFAULTS} == {k: before[k] for k in SETTINGS_DEFAULTS}

    @pytest.mark.asyncio
    async def test_unknown_column_rejected(self, member_db):
        with pytest.raises(ValueError, match="guild_id"):
            await member_db.update_settings(GUILD_ID, {"guild_id": "1"})

    @pytest.mark.asyncio
    async def test_out_of_range_rejected_by_schema(self, member_db):
        """Test CHECK constraints stop out-of-range values that skip validation."""
        await member_db.get_settings(GUILD_ID)

        with pytest.raises(sqlite3.IntegrityError):
            await member_db.update_settings(GUILD_ID, {"playlist_limit": 500})

        settings = await member_db.get_settings(GUILD_ID)
        assert settings["playlist_limit"] == 50

    @pytest.mark.asyncio
    async def test_update_unknown_guild_returns_none(self, test_db):
        assert await test_db.update_settings(OTHER_GUILD_ID, {"default_volume": 10}) is None

    @pytest.mark.asyncio
    async def test_concurrent_updates_last_write_wins(self, member_db):
        """
        Test concurrent editors: different fields both land, the same
        field keeps whichever write committed last.
        """
        await asyncio.gather(
            member_db.update_settings(GUILD_ID, {"default_volume": 10}),
            member_db.update_settings(GUILD_ID, {"playlist_limit": 77}),
        )
        settings = await member_db.get_settings(GUILD_ID)
        assert settings["default_volume"] == 10
        assert settings["playlist_limit"] == 77

        results = await asyncio.gather(
            member_db.update_settings(GUILD_ID, {"default_volume": 20}),
            member_db.update_settings(GUILD_ID, {"default_volume": 90}),
        )
        final = await member_db.get_settings(GUILD_ID)
        assert final["default_volume"] in (20, 90)
        assert any(
            r["default_volume"] == final["default_volume"] and r["updated_at"] == final["updated_at"]
            for r in results
        )


# =============================================================================
# Sessions
# =============================================================================

class TestSessions:
    """Tests for login sessions."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, member_db):
        token, expires_at = await member_db.create_session(member_db.seed_user_id, 3600)

        session = await member_db.get_session(token)
        assert session["user_id"] == member_db.seed_user_id
        assert session["discord_id"] == DISCORD_ID
        assert session["expires_at"] == expires_at
        assert session["name"] == "Tester"

    @pytest.mark.asyncio
    async def test_token_stored_hashed(self, member_db):
        token, _ = await member_db.create_session(member_db.seed_user_id, 3600)

        row = member_db.fetchone("SELECT token_hash FROM sessions")
        assert row["token_hash"] != token
        assert len(row["token_hash"]) == 64

    @pytest.mark.asyncio
    async def test_unlinked_session_has_no_discord_id(self, test_db):
        user_id = await test_db.upsert_oauth_user("discord", DISCORD_ID)
        token, _ = await test_db.create_session(user_id, 3600)

        session = await test_db.get_session(token)
        assert session["discord_id"] is None

    @pytest.mark.asyncio
    async def test_unknown_token(self, member_db):
        assert await member_db.get_session("no-such-token") is None

    @pytest.mark.asyncio
    async def test_expired_session_removed(self, member_db):
        """Test an expired session is reported missing and deleted."""
        token, _ = await member_db.create_session(member_db.seed_user_id, -1)

        assert await member_db.get_session(token) is None
        assert member_db.fetchone("SELECT COUNT(*) FROM sessions")[0] == 0

    @pytest.mark.asyncio
    async def test_delete_session(self, member_db):
        token, _ = await member_db.create_session(member_db.seed_user_id, 3600)

        assert await member_db.delete_session(token) is True
        assert await member_db.get_session(token) is None
        assert await member_db.delete_session(token) is False

    @pytest.mark.asyncio
    async def test_cleanup_expired(self, member_db):
        live, _ = await member_db.create_session(member_db.seed_user_id, 3600)
        await member_db.create_session(member_db.seed_user_id, -10)
        await member_db.create_session(member_db.seed_user_id, -20)

        assert member_db.cleanup_expired_sessions() == 2
        assert await member_db.get_session(live) is not None
