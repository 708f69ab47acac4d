"""
Isobel Dashboard - Sessions Database Mixin
==========================================

Login sessions backing the session cookie.
"""

import asyncio
import hashlib
import secrets
import time
from typing import TYPE_CHECKING, Optional, Tuple

from isobel.core.logger import logger
from isobel.core.database.models import SessionRecord

if TYPE_CHECKING:
    from isobel.core.database.manager import DatabaseManager


def _hash_token(token: str) -> str:
    """Sessions are stored by hash, never by the cookie value itself."""
    return hashlib.sha256(token.encode()).hexdigest()


class SessionsMixin:
    """Mixin for session database operations."""

    async def create_session(
        self: "DatabaseManager",
        user_id: str,
        max_age_seconds: int,
    ) -> Tuple[str, float]:
        """
        Start a session for an identity.

        Returns:
            Tuple of (cookie token, expiry timestamp).
        """
        token = secrets.token_urlsafe(32)
        now = time.time()
        expires_at = now + max_age_seconds

        await asyncio.to_thread(
            self.execute,
            """INSERT INTO sessions (token_hash, user_id, expires_at, created_at)
               VALUES (?, ?, ?, ?)""",
            (_hash_token(token), user_id, expires_at, now)
        )
        return token, expires_at

    async def get_session(self: "DatabaseManager", token: str) -> Optional[SessionRecord]:
        """
        Look up a live session and the identity behind it.

        Expired sessions are deleted on sight and reported as missing.
        """
        def _get() -> Optional[SessionRecord]:
            token_hash = _hash_token(token)
            row = self.fetchone(
                """SELECT s.user_id, s.expires_at, u.name, u.email, u.image,
                          d.id AS discord_id
                   FROM sessions s
                   JOIN users u ON u.id = s.user_id
                   LEFT JOIN discord_users d ON d.user_id = s.user_id
                   WHERE s.token_hash = ?""",
                (token_hash,)
            )
            if row is None:
                return None
            if row["expires_at"] <= time.time():
                self.execute("DELETE FROM sessions WHERE token_hash = ?", (token_hash,))
                return None
            return dict(row)

        return await asyncio.to_thread(_get)

    async def delete_session(self: "DatabaseManager", token: str) -> bool:
        """End a session. Returns True if it existed."""
        def _delete() -> bool:
            cursor = self.execute(
                "DELETE FROM sessions WHERE token_hash = ?",
                (_hash_token(token),)
            )
            return cursor.rowcount > 0

        return await asyncio.to_thread(_delete)

    def cleanup_expired_sessions(self: "DatabaseManager") -> int:
        """
        Remove expired sessions.

        Returns:
            Number of sessions removed.
        """
        cursor = self.execute(
            "DELETE FROM sessions WHERE expires_at <= ?",
            (time.time(),)
        )
        count = cursor.rowcount
        if count > 0:
            logger.tree("Expired Sessions Cleaned", [
                ("Removed", str(count)),
            ], emoji="🧹")
        return count


__all__ = ["SessionsMixin"]
