"""
Isobel Dashboard - Identity Database Mixin
==========================================

Users, OAuth accounts and linked Discord profiles.
"""

import asyncio
import time
import uuid
from typing import TYPE_CHECKING, Any, Dict, Optional

from isobel.core.logger import logger
from isobel.core.database.models import DiscordUserRecord

if TYPE_CHECKING:
    from isobel.core.database.manager import DatabaseManager


class IdentityMixin:
    """Mixin for identity database operations."""

    # =========================================================================
    # Users & Accounts
    # =========================================================================

    async def upsert_oauth_user(
        self: "DatabaseManager",
        provider: str,
        provider_account_id: str,
        name: Optional[str] = None,
        email: Optional[str] = None,
        image: Optional[str] = None,
        tokens: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Find or create the identity behind an OAuth account.

        An existing account keeps its identity and gets a refreshed profile
        and token set. A new account gets a fresh identity.

        Returns:
            Internal user ID.
        """
        tokens = tokens or {}

        def _upsert() -> str:
            now = time.time()
            with self.transaction() as tx:
                tx.execute(
                    """SELECT user_id FROM accounts
                       WHERE provider = ? AND provider_account_id = ?""",
                    (provider, provider_account_id)
                )
                row = tx.fetchone()

                if row:
                    user_id = row["user_id"]
                    tx.execute(
                        """UPDATE users SET name = ?, email = ?, image = ?, updated_at = ?
                           WHERE id = ?""",
                        (name, email, image, now, user_id)
                    )
                else:
                    user_id = str(uuid.uuid4())
                    tx.execute(
                        """INSERT INTO users (id, name, email, image, created_at, updated_at)
                           VALUES (?, ?, ?, ?, ?, ?)""",
                        (user_id, name, email, image, now, now)
                    )

                tx.execute(
                    """INSERT INTO accounts
                       (provider, provider_account_id, user_id, access_token,
                        refresh_token, token_type, scope, expires_at)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                       ON CONFLICT(provider, provider_account_id) DO UPDATE SET
                           access_token = excluded.access_token,
                           refresh_token = excluded.refresh_token,
                           token_type = excluded.token_type,
                           scope = excluded.scope,
                           expires_at = excluded.expires_at""",
                    (
                        provider,
                        provider_account_id,
                        user_id,
                        tokens.get("access_token"),
                        tokens.get("refresh_token"),
                        tokens.get("token_type"),
                        tokens.get("scope"),
                        tokens.get("expires_at"),
                    )
                )
                return user_id

        return await asyncio.to_thread(_upsert)

    # =========================================================================
    # Discord Profiles
    # =========================================================================

    async def upsert_discord_user(
        self: "DatabaseManager",
        user_id: str,
        profile: Dict[str, Any],
    ) -> None:
        """
        Link a Discord profile to an identity, refreshing it if known.

        Args:
            user_id: Internal user ID.
            profile: Discord user object (id, username, global_name, ...).
        """
        def _upsert() -> None:
            now = time.time()
            self.execute(
                """INSERT INTO discord_users
                   (id, user_id, username, global_name, discriminator, avatar,
                    created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                   ON CONFLICT(id) DO UPDATE SET
                       username = excluded.username,
                       global_name = excluded.global_name,
                       discriminator = excluded.discriminator,
                       avatar = excluded.avatar,
                       updated_at = excluded.updated_at""",
                (
                    str(profile["id"]),
                    user_id,
                    profile.get("username") or "",
                    profile.get("global_name"),
                    profile.get("discriminator"),
                    profile.get("avatar"),
                    now,
                    now,
                )
            )

        await asyncio.to_thread(_upsert)

        logger.tree("Discord User Linked", [
            ("User", user_id),
            ("Discord ID", str(profile["id"])),
            ("Username", profile.get("username") or "Unknown"),
        ], emoji="🔗")

    async def get_discord_user(self: "DatabaseManager", user_id: str) -> Optional[DiscordUserRecord]:
        """Get the Discord profile linked to an identity."""
        def _get() -> Optional[DiscordUserRecord]:
            row = self.fetchone(
                "SELECT * FROM discord_users WHERE user_id = ?",
                (user_id,)
            )
            return dict(row) if row else None

        return await asyncio.to_thread(_get)


__all__ = ["IdentityMixin"]
