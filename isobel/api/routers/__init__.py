"""
Isobel Dashboard - API Routers
==============================

Route handlers for the API.
"""

from .health import router as health_router
from .auth import router as auth_router
from .guilds import router as guilds_router
from .settings import router as settings_router

__all__ = [
    "health_router",
    "auth_router",
    "guilds_router",
    "settings_router",
]
