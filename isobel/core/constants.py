"""
Isobel Dashboard - Centralized Constants
========================================

Magic numbers and fixed values used across the project.
Import from this module instead of hardcoding values.
"""

import re

# =============================================================================
# Discord
# =============================================================================

DISCORD_API_BASE = "https://discord.com/api/v10"
DISCORD_AUTHORIZE_URL = "https://discord.com/oauth2/authorize"
DISCORD_OAUTH_SCOPE = "identify guilds"

# Permission bits (https://discord.com/developers/docs/topics/permissions)
PERMISSION_ADMINISTRATOR = 0x8
PERMISSION_MANAGE_GUILD = 0x20

# Snowflake IDs are 17-19 digit decimal strings
SNOWFLAKE_PATTERN = re.compile(r"^\d{17,19}$", re.ASCII)

# =============================================================================
# Timeout Constants (in seconds)
# =============================================================================

DISCORD_API_TIMEOUT = 10
BOT_HEALTH_TIMEOUT = 5.0
SHUTDOWN_TIMEOUT = 5.0

DB_CONNECTION_TIMEOUT = 30.0
SQLITE_BUSY_TIMEOUT = 30000  # ms

# =============================================================================
# Auth
# =============================================================================

SESSION_COOKIE_NAME = "authjs.session-token"
SECURE_COOKIE_PREFIX = "__Secure-"
CSRF_COOKIE_NAME = "authjs.csrf-token"
STATE_COOKIE_NAME = "authjs.state"
AUTH_BASE_PATH = "/api/auth"
OAUTH_STATE_TTL = 600  # 10 minutes to finish the Discord consent screen
DEFAULT_SESSION_MAX_AGE_DAYS = 30

# =============================================================================
# HTTP Limits
# =============================================================================

MAX_BODY_BYTES = 10 * 1024

API_RATE_LIMIT = 100
AUTH_RATE_LIMIT = 5
RATE_LIMIT_WINDOW = 15 * 60

# =============================================================================
# Service Identity
# =============================================================================

SERVICE_NAME = "isobel-web"
USER_AGENT = "isobel-web/1.0"
