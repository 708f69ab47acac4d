"""
Isobel Dashboard - Guild Models
===============================

Guild list models.
"""

from typing import List, Optional

from pydantic import BaseModel


class GuildSummary(BaseModel):
    """A guild the signed-in user belongs to."""

    id: str
    name: str
    icon: Optional[str] = None
    permissions: Optional[str] = None


class GuildListResponse(BaseModel):
    guilds: List[GuildSummary]


__all__ = ["GuildSummary", "GuildListResponse"]
