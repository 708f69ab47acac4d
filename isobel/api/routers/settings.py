"""
Isobel Dashboard - Guild Settings Router
========================================

Read and update a guild's playback settings.
"""

import json

from fastapi import APIRouter, Request
from pydantic import ValidationError

from isobel.core.database import get_db
from isobel.core.logger import logger
from isobel.api.errors import bad_request, not_found
from isobel.api.dependencies import (
    validate_guild_id,
    require_session,
    require_discord_id,
    require_membership,
    require_settings_permission,
)
from isobel.api.models.settings import (
    GuildSettings,
    GuildSettingsUpdate,
    SettingsResponse,
    parse_settings_update,
    validation_details,
)


router = APIRouter(prefix="/guilds", tags=["Settings"])


async def read_settings_update(request: Request) -> GuildSettingsUpdate:
    """Decode and validate the request body. An empty body is an empty update."""
    raw = await request.body()
    try:
        body = json.loads(raw) if raw.strip() else {}
    except ValueError:
        raise bad_request("Invalid JSON body")

    try:
        return parse_settings_update(body)
    except ValidationError as e:
        raise bad_request("Invalid settings", details=validation_details(e))


@router.get("/{guild_id}/settings", response_model=SettingsResponse)
async def get_guild_settings(guild_id: str, request: Request) -> SettingsResponse:
    """
    Get a guild's settings, creating the defaults on first access.

    Requires a session whose Discord account is a member of the guild.
    """
    validate_guild_id(guild_id)
    session = await require_session(request)
    require_discord_id(session)
    await require_membership(guild_id, session)

    record = await get_db().get_settings(guild_id)
    if record is None:
        raise not_found("Settings not found")

    return SettingsResponse(settings=GuildSettings.from_record(record))


@router.post("/{guild_id}/settings", response_model=SettingsResponse)
async def update_guild_settings(guild_id: str, request: Request) -> SettingsResponse:
    """
    Partially update a guild's settings.

    Requires Administrator or Manage Server in the guild. Only fields
    present in the body change.
    """
    validate_guild_id(guild_id)
    update = await read_settings_update(request)
    session = await require_session(request)
    discord_id = require_discord_id(session)
    membership = await require_membership(guild_id, session)
    require_settings_permission(membership)

    changes = update.changes()
    record = await get_db().update_settings(guild_id, changes)
    if record is None:
        raise not_found("Settings not found")

    logger.tree("Settings Saved From Dashboard", [
        ("Guild ID", guild_id),
        ("Discord ID", discord_id),
        ("Fields", str(len(changes))),
    ], emoji="💾")

    return SettingsResponse(settings=GuildSettings.from_record(record))
