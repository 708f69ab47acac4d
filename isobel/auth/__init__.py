"""
Isobel Dashboard - Identity Subsystem
=====================================

Discord OAuth sign-in and database-backed sessions for /api/auth/*.

Usage:
    from isobel.auth import get_auth_handler, from_starlette, to_starlette

    response = await get_auth_handler().handle(await from_starlette(request))
    return to_starlette(response)
"""

from isobel.auth.adapter import AuthRequest, AuthResponse, from_starlette, to_starlette
from isobel.auth.discord_oauth import DiscordOAuthClient, DiscordOAuthError
from isobel.auth.handler import (
    AuthHandler,
    get_auth_handler,
    set_auth_handler,
    reset_auth_handler,
)
from isobel.auth.session import Session, SessionResolver, get_session

__all__ = [
    "AuthRequest",
    "AuthResponse",
    "from_starlette",
    "to_starlette",
    "DiscordOAuthClient",
    "DiscordOAuthError",
    "AuthHandler",
    "get_auth_handler",
    "set_auth_handler",
    "reset_auth_handler",
    "Session",
    "SessionResolver",
    "get_session",
]
