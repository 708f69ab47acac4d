"""
Isobel Dashboard - Discord OAuth Client
=======================================

Authorization-code exchange and the two user endpoints sign-in needs.
"""

import asyncio
from typing import Any, Dict, List
from urllib.parse import urlencode

import aiohttp

from isobel.core.constants import (
    DISCORD_API_BASE,
    DISCORD_AUTHORIZE_URL,
    DISCORD_OAUTH_SCOPE,
)
from isobel.core.logger import logger
from isobel.utils.http import DISCORD_TIMEOUT, http_session


class DiscordOAuthError(Exception):
    """Discord rejected an OAuth call or could not be reached."""

    def __init__(self, message: str, status: int = 0):
        super().__init__(message)
        self.status = status


class DiscordOAuthClient:
    """Talks to Discord on behalf of a signing-in user."""

    def __init__(self, client_id: str, client_secret: str) -> None:
        self._client_id = client_id
        self._client_secret = client_secret

    def authorize_url(self, redirect_uri: str, state: str) -> str:
        """Build the consent screen URL the browser is sent to."""
        query = urlencode({
            "client_id": self._client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": DISCORD_OAUTH_SCOPE,
            "state": state,
        })
        return f"{DISCORD_AUTHORIZE_URL}?{query}"

    async def exchange_code(self, code: str, redirect_uri: str) -> Dict[str, Any]:
        """
        Trade an authorization code for tokens.

        Returns:
            Token response (access_token, refresh_token, expires_in, scope, token_type).

        Raises:
            DiscordOAuthError: On a non-200 answer or network failure.
        """
        data = {
            "client_id": self._client_id,
            "client_secret": self._client_secret,
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
        }
        return await self._request("POST", "/oauth2/token", data=data)

    async def fetch_user(self, access_token: str) -> Dict[str, Any]:
        """Get the signed-in user's profile (/users/@me)."""
        return await self._request("GET", "/users/@me", access_token=access_token)

    async def fetch_guilds(self, access_token: str) -> List[Dict[str, Any]]:
        """Get the guilds the signed-in user belongs to (/users/@me/guilds)."""
        return await self._request("GET", "/users/@me/guilds", access_token=access_token)

    async def _request(self, method: str, path: str, access_token: str = None, data: dict = None) -> Any:
        headers = {}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"

        request = http_session.post if method == "POST" else http_session.get
        try:
            async with request(
                f"{DISCORD_API_BASE}{path}",
                headers=headers,
                data=data,
                timeout=DISCORD_TIMEOUT,
            ) as resp:
                if resp.status != 200:
                    body = await resp.text()
                    logger.warning("Discord OAuth Request Failed", [
                        ("Endpoint", path),
                        ("Status", str(resp.status)),
                        ("Body", body[:100]),
                    ])
                    raise DiscordOAuthError(f"Discord returned {resp.status} for {path}", resp.status)
                return await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning("Discord OAuth Request Error", [
                ("Endpoint", path),
                ("Error Type", type(e).__name__),
                ("Error", str(e)[:100]),
            ])
            raise DiscordOAuthError(f"Discord unreachable: {type(e).__name__}") from e


__all__ = ["DiscordOAuthClient", "DiscordOAuthError"]
