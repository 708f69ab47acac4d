"""
Isobel Dashboard - Shared HTTP Session
======================================

One aiohttp ClientSession for every outbound call (Discord OAuth, bot
health proxy, error webhook).

Usage:
    from isobel.utils.http import http_session, FAST_TIMEOUT

    async with http_session.get(url, timeout=FAST_TIMEOUT) as resp:
        data = await resp.json()

    # On shutdown
    await http_session.close()
"""

import asyncio
from typing import Any, Optional

import aiohttp

from isobel.core.constants import BOT_HEALTH_TIMEOUT, DISCORD_API_TIMEOUT, USER_AGENT


# =============================================================================
# Timeouts
# =============================================================================

FAST_TIMEOUT = aiohttp.ClientTimeout(total=BOT_HEALTH_TIMEOUT)
DISCORD_TIMEOUT = aiohttp.ClientTimeout(total=DISCORD_API_TIMEOUT)


# =============================================================================
# Request Context
# =============================================================================

class _RequestContext:
    """Defers session creation until the request is entered."""

    def __init__(self, manager: "HTTPSessionManager", method: str, url: str, kwargs: dict) -> None:
        self._manager = manager
        self._method = method
        self._url = url
        self._kwargs = kwargs
        self._ctx: Any = None

    async def __aenter__(self) -> aiohttp.ClientResponse:
        session = await self._manager.get_session()
        self._ctx = session.request(self._method, self._url, **self._kwargs)
        return await self._ctx.__aenter__()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self._ctx.__aexit__(exc_type, exc_val, exc_tb)


# =============================================================================
# Session Manager
# =============================================================================

class HTTPSessionManager:
    """
    Lazily created, loop-bound aiohttp session.

    DESIGN: A session belongs to the event loop it was created on. Test
    clients and reloads start new loops, so a session from a previous
    loop is dropped and rebuilt instead of reused.
    """

    def __init__(self) -> None:
        self._session: Optional[aiohttp.ClientSession] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    async def get_session(self) -> aiohttp.ClientSession:
        loop = asyncio.get_running_loop()
        if self._session is None or self._session.closed or self._loop is not loop:
            self._session = aiohttp.ClientSession(headers={"User-Agent": USER_AGENT})
            self._loop = loop
        return self._session

    def get(self, url: str, **kwargs: Any) -> _RequestContext:
        return _RequestContext(self, "GET", url, kwargs)

    def post(self, url: str, **kwargs: Any) -> _RequestContext:
        return _RequestContext(self, "POST", url, kwargs)

    async def close(self) -> None:
        """Close the session if it belongs to the running loop."""
        session, self._session = self._session, None
        if session is not None and not session.closed and self._loop is asyncio.get_running_loop():
            await session.close()
        self._loop = None


http_session = HTTPSessionManager()


__all__ = ["http_session", "HTTPSessionManager", "FAST_TIMEOUT", "DISCORD_TIMEOUT"]
