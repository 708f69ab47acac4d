"""
Isobel Dashboard - Guilds Router
================================

Guilds the signed-in user belongs to.
"""

from fastapi import APIRouter, Request

from isobel.core.database import get_db
from isobel.api.dependencies import require_session
from isobel.api.models.guilds import GuildListResponse, GuildSummary


router = APIRouter(prefix="/guilds", tags=["Guilds"])


@router.get("", response_model=GuildListResponse)
async def list_guilds(request: Request) -> GuildListResponse:
    """List the user's guilds. Empty when no Discord account is linked."""
    session = await require_session(request)
    if not session.discord_id:
        return GuildListResponse(guilds=[])

    records = await get_db().get_user_guilds(session.discord_id)
    return GuildListResponse(guilds=[GuildSummary(**record) for record in records])
