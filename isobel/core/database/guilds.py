"""
Isobel Dashboard - Guilds Database Mixin
========================================

Discord guilds and the memberships that gate settings access.
"""

import asyncio
import time
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from isobel.core.logger import logger
from isobel.core.database.models import MembershipRecord, UserGuildRecord

if TYPE_CHECKING:
    from isobel.core.database.manager import DatabaseManager


def membership_id(guild_id: str, discord_user_id: str) -> str:
    """Primary key of a guild_members row."""
    return f"{guild_id}_{discord_user_id}"


class GuildsMixin:
    """Mixin for guild and membership database operations."""

    async def save_user_guilds(
        self: "DatabaseManager",
        discord_user_id: str,
        guilds: List[Dict[str, Any]],
    ) -> int:
        """
        Upsert every guild a user belongs to together with the membership.

        Runs in one transaction so a failed sign-in never leaves half the
        guild list behind.

        Args:
            discord_user_id: Discord ID of the member.
            guilds: Partial guild objects from /users/@me/guilds.

        Returns:
            Number of guilds saved.
        """
        def _save() -> int:
            now = time.time()
            with self.transaction() as tx:
                for guild in guilds:
                    guild_id = str(guild["id"])
                    permissions = guild.get("permissions")
                    if permissions is not None:
                        permissions = str(permissions)

                    tx.execute(
                        """INSERT INTO discord_guilds
                           (id, name, icon, owner_id, owner, permissions, created_at, updated_at)
                           VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                           ON CONFLICT(id) DO UPDATE SET
                               name = excluded.name,
                               icon = excluded.icon,
                               owner = excluded.owner,
                               permissions = excluded.permissions,
                               updated_at = excluded.updated_at""",
                        (
                            guild_id,
                            guild.get("name") or "",
                            guild.get("icon"),
                            discord_user_id if guild.get("owner") else "",
                            1 if guild.get("owner") else 0,
                            permissions,
                            now,
                            now,
                        )
                    )
                    tx.execute(
                        """INSERT INTO guild_members
                           (id, guild_id, user_id, permissions, created_at, updated_at)
                           VALUES (?, ?, ?, ?, ?, ?)
                           ON CONFLICT(id) DO UPDATE SET
                               permissions = excluded.permissions,
                               updated_at = excluded.updated_at""",
                        (
                            membership_id(guild_id, discord_user_id),
                            guild_id,
                            discord_user_id,
                            permissions,
                            now,
                            now,
                        )
                    )
            return len(guilds)

        saved = await asyncio.to_thread(_save)

        logger.tree("User Guilds Saved", [
            ("Discord ID", discord_user_id),
            ("Guilds", str(saved)),
        ], emoji="🏰")

        return saved

    async def get_membership(
        self: "DatabaseManager",
        guild_id: str,
        discord_user_id: str,
    ) -> Optional[MembershipRecord]:
        """Get a user's membership in a guild, or None if not a member."""
        def _get() -> Optional[MembershipRecord]:
            row = self.fetchone(
                "SELECT * FROM guild_members WHERE guild_id = ? AND user_id = ?",
                (guild_id, discord_user_id)
            )
            return dict(row) if row else None

        return await asyncio.to_thread(_get)

    async def find_membership(
        self: "DatabaseManager",
        user_id: str,
        guild_id: str,
    ) -> Optional[MembershipRecord]:
        """
        Find an identity's membership in a guild.

        Goes through the identity's linked Discord account, so an identity
        without one is never a member. Read-only.

        Args:
            user_id: Internal user ID.
            guild_id: Discord guild ID.
        """
        def _find() -> Optional[MembershipRecord]:
            row = self.fetchone(
                """SELECT m.*
                   FROM guild_members m
                   JOIN discord_users d ON d.id = m.user_id
                   WHERE d.user_id = ? AND m.guild_id = ?""",
                (user_id, guild_id)
            )
            return dict(row) if row else None

        return await asyncio.to_thread(_find)

    async def get_user_guilds(
        self: "DatabaseManager",
        discord_user_id: str,
    ) -> List[UserGuildRecord]:
        """List the guilds a user belongs to, in the order they were saved."""
        def _get() -> List[UserGuildRecord]:
            rows = self.fetchall(
                """SELECT g.id, g.name, g.icon, m.permissions
                   FROM guild_members m
                   JOIN discord_guilds g ON g.id = m.guild_id
                   WHERE m.user_id = ?
                   ORDER BY m.rowid""",
                (discord_user_id,)
            )
            return [dict(row) for row in rows]

        return await asyncio.to_thread(_get)

    async def remove_guild(self: "DatabaseManager", guild_id: str) -> bool:
        """
        Delete a guild. Memberships and settings go with it.

        Returns:
            True if the guild existed.
        """
        def _remove() -> bool:
            cursor = self.execute("DELETE FROM discord_guilds WHERE id = ?", (guild_id,))
            return cursor.rowcount > 0

        removed = await asyncio.to_thread(_remove)
        if removed:
            logger.tree("Guild Removed", [
                ("Guild ID", guild_id),
            ], emoji="🗑️")
        return removed


__all__ = ["GuildsMixin", "membership_id"]
