#!/usr/bin/env python3
"""
Isobel Dashboard - Entry Point
==============================

Runs the dashboard backend for the Isobel music bot.

Features:
- Environment validation before anything starts
- Discord OAuth sign-in and database sessions
- Guild settings API
- Graceful shutdown on SIGINT/SIGTERM (handled by uvicorn)
"""

import asyncio
import sys

from dotenv import load_dotenv

from isobel.core.logger import logger
from isobel.core.config import ConfigValidationError, validate_and_log_config


async def main() -> None:
    """
    Validate configuration, then serve until interrupted.

    Raises:
        SystemExit: If required configuration is missing.
    """
    load_dotenv()

    try:
        validate_and_log_config()
    except ConfigValidationError as e:
        logger.critical("Environment Validation Failed", [
            ("Error", str(e)),
        ])
        sys.exit(1)

    from isobel.api import APIService

    service = APIService()
    await service.start()
    try:
        await service.wait()
    finally:
        await service.stop()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Dashboard Stopped By User")
