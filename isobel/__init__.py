"""
Isobel Dashboard
================

Backend for the Isobel music bot web dashboard.

Discord sign-in, the list of guilds a user shares with the bot, and
per-guild playback settings stored in SQLite.
"""

__version__ = "1.0.0"
