"""
Isobel Dashboard - Health Router
================================

Web server health and the proxied bot health.
"""

import time
from datetime import datetime, timezone

import aiohttp
import psutil
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from isobel.core.constants import SERVICE_NAME
from isobel.api.config import APIConfig
from isobel.api.models.base import HealthResponse
from isobel.api.services.bot_health import fetch_bot_health


router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Liveness of this web server, for load balancers."""
    uptime = time.time() - psutil.Process().create_time()
    return HealthResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc),
        uptime=round(uptime, 3),
        service=SERVICE_NAME,
    )


@router.get("/api/health")
async def bot_health(request: Request) -> JSONResponse:
    """
    The music bot's health report, passed through.

    The bot's status code is kept on failure; an unreachable bot is 503.
    """
    config: APIConfig = request.app.state.config
    result = await fetch_bot_health(timeout=aiohttp.ClientTimeout(total=config.health_timeout))
    return JSONResponse(status_code=result.status, content=result.payload)
