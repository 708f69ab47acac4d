"""
Isobel Dashboard - API Guards
=============================

Authorization steps shared by the guild routes.

DESIGN:
    The guards are plain functions called in a fixed order inside each
    handler rather than FastAPI dependencies, because the order is part
    of the contract: a malformed guild ID is rejected before any session
    or database lookup, and a bad body before authentication.

        validate_guild_id      400
        require_session        401
        require_discord_id     403
        require_membership     403
        require_settings_permission  403 (writes only)
"""

from fastapi import Request

from isobel.api.errors import bad_request, forbidden, unauthorized
from isobel.auth.session import Session, get_session
from isobel.core.database import MembershipRecord, get_db
from isobel.core.permissions import can_manage_settings, is_valid_snowflake


def validate_guild_id(guild_id: str) -> str:
    """Reject anything that is not a 17-19 digit snowflake."""
    if not is_valid_snowflake(guild_id):
        raise bad_request("Invalid guild ID")
    return guild_id


async def require_session(request: Request) -> Session:
    session = await get_session(request)
    if session is None:
        raise unauthorized()
    return session


def require_discord_id(session: Session) -> str:
    if not session.discord_id:
        raise forbidden("Discord account not linked")
    return session.discord_id


async def require_membership(guild_id: str, session: Session) -> MembershipRecord:
    membership = await get_db().find_membership(session.user_id, guild_id)
    if membership is None:
        raise forbidden("You are not a member of this server")
    return membership


def require_settings_permission(membership: MembershipRecord) -> None:
    """Administrator or Manage Server on the stored membership bitmask."""
    if not can_manage_settings(membership.get("permissions")):
        raise forbidden("You do not have permission to modify settings")


__all__ = [
    "validate_guild_id",
    "require_session",
    "require_discord_id",
    "require_membership",
    "require_settings_permission",
]
