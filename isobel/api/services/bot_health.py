"""
Isobel Dashboard - Bot Health Proxy
===================================

Fetches the music bot's own health report for GET /api/health.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Optional

import aiohttp

from isobel.core.config import get_config
from isobel.core.logger import logger
from isobel.utils.http import FAST_TIMEOUT, http_session
from isobel.api.errors import ERROR_STATUS_CODES, ErrorKind


@dataclass
class BotHealthResult:
    """Status code and JSON body to send back to the dashboard."""

    status: int
    payload: Any


def normalize_health_url(base_url: str) -> str:
    """
    Point a bot base URL at its /health endpoint.

    "http://bot:8080" and "http://bot:8080/" become
    "http://bot:8080/health"; a URL already ending in /health is kept.
    """
    url = base_url.strip()
    if url.endswith("/health"):
        return url
    if url.endswith("/"):
        return f"{url}health"
    return f"{url}/health"


async def fetch_bot_health(
    base_url: Optional[str] = None,
    timeout: aiohttp.ClientTimeout = FAST_TIMEOUT,
) -> BotHealthResult:
    """
    Proxy the bot's health endpoint.

    Returns:
        The bot's JSON verbatim on 2xx. On any other status, that status
        with an error body. On network failure or timeout, the
        UPSTREAM_UNAVAILABLE status (503).
    """
    url = normalize_health_url(base_url or get_config().bot_health_url)

    try:
        async with http_session.get(url, timeout=timeout) as resp:
            if resp.status < 200 or resp.status >= 300:
                text = await resp.text()
                logger.warning("Bot Health Check Failed", [
                    ("URL", url),
                    ("Status", str(resp.status)),
                    ("Body", text[:200]),
                ])
                return BotHealthResult(resp.status, {
                    "status": "error",
                    "ready": False,
                    "error": f"Bot health check failed with status {resp.status}: {resp.reason or ''}".rstrip(": "),
                    "url": url,
                })

            data = await resp.json(content_type=None)
            logger.debug("Bot Health Check OK", [("URL", url)])
            return BotHealthResult(200, data)

    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
        error_name = "TimeoutError" if isinstance(e, asyncio.TimeoutError) else type(e).__name__
        message = str(e) or "request timed out"
        logger.error("Bot Health Unreachable", [
            ("URL", url),
            ("Error Type", error_name),
            ("Error", message[:100]),
        ])
        return BotHealthResult(ERROR_STATUS_CODES[ErrorKind.UPSTREAM_UNAVAILABLE], {
            "status": "error",
            "ready": False,
            "error": f"Unable to connect to bot health server: {message}",
            "url": url,
            "errorName": error_name,
        })


__all__ = ["BotHealthResult", "normalize_health_url", "fetch_bot_health"]
