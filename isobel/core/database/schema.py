"""
Isobel Dashboard - Database Schema
==================================

Table definitions.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from isobel.core.database.manager import DatabaseManager


class SchemaMixin:
    """Mixin for database schema initialization."""

    def _init_tables(self: "DatabaseManager") -> None:
        """
        Create all tables and indexes if they do not exist.

        DESIGN: Safe to run on every start. Discord IDs are stored as TEXT
        because they are exchanged with the frontend as strings.
        """
        conn = self._connection()
        cursor = conn.cursor()

        # -----------------------------------------------------------------
        # Users Table
        # DESIGN: Internal identity, one row per person who signed in
        # -----------------------------------------------------------------
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS users (
                id TEXT PRIMARY KEY,
                name TEXT,
                email TEXT,
                image TEXT,
                created_at REAL NOT NULL,
                updated_at REAL NOT NULL
            )
        """)

        # -----------------------------------------------------------------
        # Accounts Table
        # DESIGN: Links an identity to an OAuth provider account
        # -----------------------------------------------------------------
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS accounts (
                provider TEXT NOT NULL,
                provider_account_id TEXT NOT NULL,
                user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
                access_token TEXT,
                refresh_token TEXT,
                token_type TEXT,
                scope TEXT,
                expires_at REAL,
                PRIMARY KEY (provider, provider_account_id)
            )
        """)
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_accounts_user ON accounts(user_id)"
        )

        # -----------------------------------------------------------------
        # Sessions Table
        # DESIGN: Database sessions, only the SHA-256 of the cookie is kept
        # -----------------------------------------------------------------
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS sessions (
                token_hash TEXT PRIMARY KEY,
                user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
                expires_at REAL NOT NULL,
                created_at REAL NOT NULL
            )
        """)
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_sessions_user ON sessions(user_id)"
        )
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_sessions_expires ON sessions(expires_at)"
        )

        # -----------------------------------------------------------------
        # Discord Users Table
        # DESIGN: Discord profile, at most one per identity
        # -----------------------------------------------------------------
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS discord_users (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL UNIQUE REFERENCES users(id) ON DELETE CASCADE,
                username TEXT NOT NULL,
                global_name TEXT,
                discriminator TEXT,
                avatar TEXT,
                created_at REAL NOT NULL,
                updated_at REAL NOT NULL
            )
        """)

        # -----------------------------------------------------------------
        # Discord Guilds Table
        # -----------------------------------------------------------------
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS discord_guilds (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                icon TEXT,
                owner_id TEXT NOT NULL DEFAULT '',
                owner INTEGER NOT NULL DEFAULT 0,
                permissions TEXT,
                created_at REAL NOT NULL,
                updated_at REAL NOT NULL
            )
        """)

        # -----------------------------------------------------------------
        # Guild Members Table
        # DESIGN: id is "<guild_id>_<user_id>", unique per pair
        # -----------------------------------------------------------------
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS guild_members (
                id TEXT PRIMARY KEY,
                guild_id TEXT NOT NULL REFERENCES discord_guilds(id) ON DELETE CASCADE,
                user_id TEXT NOT NULL REFERENCES discord_users(id) ON DELETE CASCADE,
                permissions TEXT,
                created_at REAL NOT NULL,
                updated_at REAL NOT NULL,
                UNIQUE (guild_id, user_id)
            )
        """)
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_guild_members_user ON guild_members(user_id)"
        )

        # -----------------------------------------------------------------
        # Settings Table
        # DESIGN: One row per guild, ranges enforced by CHECK constraints
        # -----------------------------------------------------------------
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS settings (
                guild_id TEXT PRIMARY KEY REFERENCES discord_guilds(id) ON DELETE CASCADE,
                playlist_limit INTEGER NOT NULL DEFAULT 50
                    CHECK (playlist_limit BETWEEN 1 AND 200),
                seconds_to_wait_after_queue_empties INTEGER NOT NULL DEFAULT 30
                    CHECK (seconds_to_wait_after_queue_empties BETWEEN 0 AND 300),
                leave_if_no_listeners INTEGER NOT NULL DEFAULT 1,
                queue_add_response_ephemeral INTEGER NOT NULL DEFAULT 0,
                auto_announce_next_song INTEGER NOT NULL DEFAULT 0,
                default_volume INTEGER NOT NULL DEFAULT 100
                    CHECK (default_volume BETWEEN 0 AND 100),
                default_queue_page_size INTEGER NOT NULL DEFAULT 10
                    CHECK (default_queue_page_size BETWEEN 1 AND 30),
                turn_down_volume_when_people_speak INTEGER NOT NULL DEFAULT 0,
                turn_down_volume_when_people_speak_target INTEGER NOT NULL DEFAULT 20
                    CHECK (turn_down_volume_when_people_speak_target BETWEEN 0 AND 100),
                created_at REAL NOT NULL,
                updated_at REAL NOT NULL
            )
        """)

        conn.commit()


__all__ = ["SchemaMixin"]
