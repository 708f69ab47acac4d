"""
Isobel Dashboard - Database Type Definitions
============================================

TypedDict definitions for database records.
"""

from typing import Optional, TypedDict


class DiscordUserRecord(TypedDict, total=False):
    """Discord profile linked to an identity."""
    id: str
    user_id: str
    username: str
    global_name: Optional[str]
    discriminator: Optional[str]
    avatar: Optional[str]


class MembershipRecord(TypedDict, total=False):
    """A Discord user's membership in a guild."""
    id: str
    guild_id: str
    user_id: str
    permissions: Optional[str]
    created_at: float
    updated_at: float


class UserGuildRecord(TypedDict):
    """Guild summary as listed for a user."""
    id: str
    name: str
    icon: Optional[str]
    permissions: Optional[str]


class SettingsRecord(TypedDict):
    """Per-guild playback settings."""
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
    created_at: float
    updated_at: float


class SessionRecord(TypedDict):
    """A live login session joined with its identity."""
    user_id: str
    name: Optional[str]
    email: Optional[str]
    image: Optional[str]
    discord_id: Optional[str]
    expires_at: float


__all__ = [
    "DiscordUserRecord",
    "MembershipRecord",
    "UserGuildRecord",
    "SettingsRecord",
    "SessionRecord",
]
