"""
Isobel Dashboard - Session Resolver
===================================

Turns an inbound request into the signed-in user, by asking the auth
handler for GET /api/auth/session with the caller's cookies.
"""

import json
from dataclasses import dataclass
from typing import Optional

from starlette.requests import Request

from isobel.auth.adapter import AuthRequest, Headers
from isobel.auth.handler import AuthHandler, get_auth_handler
from isobel.core.constants import AUTH_BASE_PATH


@dataclass(frozen=True)
class Session:
    """The signed-in user as route handlers see it."""

    user_id: str
    discord_id: Optional[str] = None
    name: Optional[str] = None
    image: Optional[str] = None
    expires: Optional[str] = None


class SessionResolver:
    """Resolves sessions through the auth handler's own session endpoint."""

    def __init__(self, handler: Optional[AuthHandler] = None) -> None:
        self._handler = handler

    @property
    def handler(self) -> AuthHandler:
        return self._handler if self._handler is not None else get_auth_handler()

    async def resolve(self, headers: Headers, base_url: str) -> Optional[Session]:
        """
        Look up the session carried by these request headers.

        Returns:
            Session, or None when there is no session, the body is not
            JSON, or the session user has no id.
        """
        request = AuthRequest(
            method="GET",
            url=f"{base_url.rstrip('/')}{AUTH_BASE_PATH}/session",
            headers=list(headers),
        )
        response = await self.handler.handle(request)
        if response.status != 200 or not response.body:
            return None

        try:
            data = json.loads(response.body)
        except ValueError:
            return None

        if not isinstance(data, dict):
            return None
        user = data.get("user")
        if not isinstance(user, dict) or not user.get("id"):
            return None

        return Session(
            user_id=str(user["id"]),
            discord_id=user.get("discordId") or None,
            name=user.get("name"),
            image=user.get("image"),
            expires=data.get("expires"),
        )

    async def from_request(self, request: Request) -> Optional[Session]:
        return await self.resolve(list(request.headers.items()), str(request.base_url))


async def get_session(request: Request) -> Optional[Session]:
    """Resolve the session of a Starlette request with the global handler."""
    return await SessionResolver().from_request(request)


__all__ = ["Session", "SessionResolver", "get_session"]
