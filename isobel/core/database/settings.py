"""
Isobel Dashboard - Settings Database Mixin
==========================================

Per-guild playback settings: get-or-create and partial update.

DESIGN:
    A guild's settings row is created lazily on first read. Concurrent
    first reads all try the insert; ON CONFLICT DO NOTHING lets every one
    but the first fall through to the re-read, so the primary key keeps
    the table at one row per guild without retries.

    Updates are last-write-wins. Two editors submitting different fields
    both land; the same field takes whichever commit is later.
"""

import asyncio
import sqlite3
import time
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional

from isobel.core.logger import logger
from isobel.core.database.models import SettingsRecord

if TYPE_CHECKING:
    from isobel.core.database.manager import DatabaseManager


# =============================================================================
# Column Definitions
# =============================================================================

# Column -> default. Keep in sync with the settings table in schema.py.
SETTINGS_DEFAULTS: Dict[str, Any] = {
    "playlist_limit": 50,
    "seconds_to_wait_after_queue_empties": 30,
    "leave_if_no_listeners": True,
    "queue_add_response_ephemeral": False,
    "auto_announce_next_song": False,
    "default_volume": 100,
    "default_queue_page_size": 10,
    "turn_down_volume_when_people_speak": False,
    "turn_down_volume_when_people_speak_target": 20,
}

BOOLEAN_COLUMNS = frozenset(
    column for column, default in SETTINGS_DEFAULTS.items()
    if isinstance(default, bool)
)

_INSERT_DEFAULT_ROW = """
    INSERT INTO settings (guild_id, created_at, updated_at)
    VALUES (?, ?, ?)
    ON CONFLICT(guild_id) DO NOTHING
"""


def _row_to_settings(row: sqlite3.Row) -> SettingsRecord:
    """Convert a settings row, restoring booleans stored as 0/1."""
    record = dict(row)
    for column in BOOLEAN_COLUMNS:
        record[column] = bool(record[column])
    return record


class SettingsMixin:
    """Mixin for guild settings database operations."""

    async def get_settings(self: "DatabaseManager", guild_id: str) -> Optional[SettingsRecord]:
        """
        Get a guild's settings, creating the default row on first access.

        Returns:
            Settings record, or None if the guild itself is gone (deleted
            concurrently, so the settings row has nothing to reference).
        """
        def _get() -> Optional[SettingsRecord]:
            row = self.fetchone("SELECT * FROM settings WHERE guild_id = ?", (guild_id,))
            if row is None:
                now = time.time()
                try:
                    cursor = self.execute(_INSERT_DEFAULT_ROW, (guild_id, now, now))
                except sqlite3.IntegrityError:
                    # No discord_guilds row to hang settings on
                    logger.warning("Guild Settings Unavailable", [
                        ("Guild ID", guild_id),
                        ("Reason", "Guild not found"),
                    ])
                    return None
                if cursor.rowcount > 0:
                    logger.tree("Guild Settings Created", [
                        ("Guild ID", guild_id),
                    ], emoji="🎛️")
                row = self.fetchone("SELECT * FROM settings WHERE guild_id = ?", (guild_id,))
            return _row_to_settings(row) if row else None

        return await asyncio.to_thread(_get)

    async def update_settings(
        self: "DatabaseManager",
        guild_id: str,
        fields: Mapping[str, Any],
    ) -> Optional[SettingsRecord]:
        """
        Apply a partial update to a guild's settings.

        Only the given columns change; updated_at always moves forward.
        The default row is created first if the guild has none.

        Args:
            guild_id: Guild to update.
            fields: Column -> new value. Unknown columns raise ValueError.

        Returns:
            The settings after the update, or None if the guild is gone.
        """
        unknown = set(fields) - SETTINGS_DEFAULTS.keys()
        if unknown:
            raise ValueError(f"Unknown settings columns: {', '.join(sorted(unknown))}")

        columns = list(fields)

        def _update() -> Optional[SettingsRecord]:
            with self.transaction() as tx:
                now = time.time()
                try:
                    tx.execute(_INSERT_DEFAULT_ROW, (guild_id, now, now))
                except sqlite3.IntegrityError:
                    return None

                assignments = "".join(f"{column} = ?, " for column in columns)
                tx.execute(
                    f"UPDATE settings SET {assignments}updated_at = ? WHERE guild_id = ?",
                    (*(fields[column] for column in columns), now, guild_id)
                )

                tx.execute("SELECT * FROM settings WHERE guild_id = ?", (guild_id,))
                row = tx.fetchone()
            return _row_to_settings(row) if row else None

        settings = await asyncio.to_thread(_update)
        if settings is None:
            return None

        logger.tree("Guild Settings Updated", [
            ("Guild ID", guild_id),
            ("Fields", ", ".join(columns) or "none"),
        ], emoji="🎛️")

        return settings


__all__ = ["SettingsMixin", "SETTINGS_DEFAULTS", "BOOLEAN_COLUMNS"]
