"""
Isobel Dashboard - Database Module
==================================

SQLite persistence for identities, guilds, memberships, sessions and
per-guild settings.
"""

from isobel.core.database.manager import (
    DatabaseManager,
    init_db,
    get_db,
    close_db,
)
from isobel.core.database.settings import SETTINGS_DEFAULTS
from isobel.core.database.models import (
    DiscordUserRecord,
    MembershipRecord,
    UserGuildRecord,
    SettingsRecord,
    SessionRecord,
)

__all__ = [
    "DatabaseManager",
    "init_db",
    "get_db",
    "close_db",
    "SETTINGS_DEFAULTS",
    "DiscordUserRecord",
    "MembershipRecord",
    "UserGuildRecord",
    "SettingsRecord",
    "SessionRecord",
]
