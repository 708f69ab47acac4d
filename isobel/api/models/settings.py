"""
Isobel Dashboard - Guild Settings Models
========================================

Response and update models for per-guild playback settings.

DESIGN:
    Updates are strict: unknown keys, wrong JSON types (a boolean is not
    an integer, "50" is not 50), explicit nulls and out-of-range values
    are all rejected. Fields left out of the body stay unset and are not
    written.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, Field, StrictBool, StrictInt, ValidationError
from pydantic.alias_generators import to_camel

from isobel.api.models.base import CamelModel
from isobel.core.database import SettingsRecord


# =============================================================================
# Response
# =============================================================================

class GuildSettings(CamelModel):
    """A guild's full settings row."""

    guild_id: str
    playlist_limit: int
    seconds_to_wait_after_queue_empties: int
    leave_if_no_listeners: bool
    queue_add_response_ephemeral: bool
    auto_announce_next_song: bool
    default_volume: int
    default_queue_page_size: int
    turn_down_volume_when_people_speak: bool
    turn_down_volume_when_people_speak_target: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, record: SettingsRecord) -> "GuildSettings":
        data: Dict[str, Any] = dict(record)
        data["created_at"] = datetime.fromtimestamp(record["created_at"], tz=timezone.utc)
        data["updated_at"] = datetime.fromtimestamp(record["updated_at"], tz=timezone.utc)
        return cls(**data)


class SettingsResponse(CamelModel):
    settings: GuildSettings


# =============================================================================
# Update
# =============================================================================

class GuildSettingsUpdate(CamelModel):
    """Partial settings update. Every field is optional, none is nullable."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=False,
        extra="forbid",
    )

    playlist_limit: StrictInt = Field(None, ge=1, le=200)
    seconds_to_wait_after_queue_empties: StrictInt = Field(None, ge=0, le=300)
    leave_if_no_listeners: StrictBool = None
    queue_add_response_ephemeral: StrictBool = None
    auto_announce_next_song: StrictBool = None
    default_volume: StrictInt = Field(None, ge=0, le=100)
    default_queue_page_size: StrictInt = Field(None, ge=1, le=30)
    turn_down_volume_when_people_speak: StrictBool = None
    turn_down_volume_when_people_speak_target: StrictInt = Field(None, ge=0, le=100)

    def changes(self) -> Dict[str, Any]:
        """Only the fields present in the request body, by column name."""
        return self.model_dump(exclude_unset=True)


def validation_details(error: ValidationError) -> List[Dict[str, Any]]:
    """Flatten pydantic errors into the `details` list of a 400 response."""
    details = []
    for item in error.errors(include_url=False, include_input=False):
        details.append({
            "path": [str(part) for part in item["loc"]],
            "message": item["msg"],
            "code": item["type"],
        })
    return details


def parse_settings_update(body: Any) -> GuildSettingsUpdate:
    """
    Validate a decoded JSON body as a settings update.

    Raises:
        ValidationError: If the body is not an object or any field is invalid.
    """
    return GuildSettingsUpdate.model_validate(body)


__all__ = [
    "GuildSettings",
    "SettingsResponse",
    "GuildSettingsUpdate",
    "validation_details",
    "parse_settings_update",
]
