"""
Isobel Dashboard - API Services
===============================

Business logic behind the route handlers.
"""

from .bot_health import BotHealthResult, fetch_bot_health, normalize_health_url

__all__ = ["BotHealthResult", "fetch_bot_health", "normalize_health_url"]
