"""
Isobel Dashboard - API Package
==============================

FastAPI backend for the music bot dashboard.

Features:
- Discord OAuth sign-in with database sessions (/api/auth/*)
- Guild list and per-guild settings (/api/guilds/*)
- Bot health passthrough (/api/health) and liveness (/health)
- Origin policy, rate limiting and request logging

Usage:
    from isobel.api import APIService

    api_service = APIService()
    await api_service.start()

    # On shutdown
    await api_service.stop()

Standalone (for development):
    uvicorn isobel.api.app:get_app --factory --reload
"""

import asyncio
from typing import Optional

import uvicorn
from fastapi import FastAPI

from isobel.core.constants import SHUTDOWN_TIMEOUT
from isobel.core.logger import logger
from isobel.api.config import APIConfig, get_api_config
from isobel.api.app import create_app, get_app


# =============================================================================
# API Service
# =============================================================================

class APIService:
    """Runs the uvicorn server in a background task."""

    def __init__(self, config: Optional[APIConfig] = None, app: Optional[FastAPI] = None) -> None:
        self._config = config or get_api_config()
        self._app = app or create_app(self._config)
        self._server: Optional[uvicorn.Server] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        """Check if the API server is running."""
        return self._task is not None and not self._task.done()

    @property
    def app(self) -> FastAPI:
        return self._app

    async def start(self) -> None:
        """Start the API server in a background task."""
        if self.is_running:
            logger.warning("API Already Running")
            return

        config = uvicorn.Config(
            app=self._app,
            host=self._config.host,
            port=self._config.port,
            log_level="warning",
            access_log=False,  # LoggingMiddleware logs requests
        )

        self._server = uvicorn.Server(config)
        self._task = asyncio.create_task(self._run_server(), name="API Server")

        logger.tree("API Service Started", [
            ("Host", self._config.host),
            ("Port", str(self._config.port)),
            ("Debug", str(self._config.debug)),
        ], emoji="🌐")

    async def wait(self) -> None:
        """Block until the server task finishes."""
        if self._task:
            await self._task

    async def _run_server(self) -> None:
        """Run the uvicorn server."""
        try:
            await self._server.serve()
        except asyncio.CancelledError:
            logger.debug("API Server Cancelled")
            raise
        except Exception as e:
            logger.error("API Server Error", [
                ("Error Type", type(e).__name__),
                ("Error", str(e)[:100]),
            ])
            raise

    async def stop(self) -> None:
        """Stop the API server gracefully."""
        if not self.is_running:
            return

        logger.tree("API Service Stopping", [], emoji="🛑")

        if self._server:
            self._server.should_exit = True

        if self._task:
            try:
                await asyncio.wait_for(self._task, timeout=SHUTDOWN_TIMEOUT)
            except asyncio.TimeoutError:
                self._task.cancel()
                try:
                    await self._task
                except asyncio.CancelledError:
                    pass

        self._server = None
        self._task = None

        logger.tree("API Service Stopped", [], emoji="✅")


__all__ = [
    "APIService",
    "APIConfig",
    "get_api_config",
    "create_app",
    "get_app",
]
