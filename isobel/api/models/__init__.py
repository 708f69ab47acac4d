"""
Isobel Dashboard - API Models
=============================

Pydantic models for request/response validation.
"""

from .base import CamelModel, ErrorResponse, HealthResponse
from .guilds import GuildSummary, GuildListResponse
from .settings import (
    GuildSettings,
    SettingsResponse,
    GuildSettingsUpdate,
    validation_details,
    parse_settings_update,
)

__all__ = [
    "CamelModel",
    "ErrorResponse",
    "HealthResponse",
    "GuildSummary",
    "GuildListResponse",
    "GuildSettings",
    "SettingsResponse",
    "GuildSettingsUpdate",
    "validation_details",
    "parse_settings_update",
]
