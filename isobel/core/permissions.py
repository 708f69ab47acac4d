"""
Isobel Dashboard - Permission Evaluator
=======================================

Discord permission bitmask checks.

Discord sends permissions as decimal strings because the bitmask does not
fit in a JavaScript number. Python ints are arbitrary precision, so the
string is parsed directly.
"""

from typing import Optional

from isobel.core.constants import (
    PERMISSION_ADMINISTRATOR,
    PERMISSION_MANAGE_GUILD,
    SNOWFLAKE_PATTERN,
)


def parse_permissions(permissions: Optional[str]) -> Optional[int]:
    """
    Parse a permission bitmask string.

    Returns:
        The bitmask, or None for missing, negative or malformed input.
    """
    if permissions is None:
        return None
    value = permissions.strip() if isinstance(permissions, str) else ""
    if not value.isdigit() or not value.isascii():
        return None
    try:
        return int(value)
    except ValueError:
        # Past the interpreter's int string conversion limit
        return None


def has_permission(permissions: Optional[str], flag: int) -> bool:
    """Check whether every bit of `flag` is set in the bitmask string."""
    bits = parse_permissions(permissions)
    if bits is None:
        return False
    return bits & flag == flag


def has_administrator(permissions: Optional[str]) -> bool:
    return has_permission(permissions, PERMISSION_ADMINISTRATOR)


def has_manage_guild(permissions: Optional[str]) -> bool:
    return has_permission(permissions, PERMISSION_MANAGE_GUILD)


def can_manage_settings(permissions: Optional[str]) -> bool:
    """
    Check if a member may edit guild settings.

    Requires ADMINISTRATOR (0x8) or MANAGE_GUILD (0x20). Never raises.
    """
    return has_administrator(permissions) or has_manage_guild(permissions)


def is_valid_snowflake(value: Optional[str]) -> bool:
    """Check a Discord ID string (17-19 digits)."""
    if not isinstance(value, str):
        return False
    return SNOWFLAKE_PATTERN.fullmatch(value) is not None


__all__ = [
    "parse_permissions",
    "has_permission",
    "has_administrator",
    "has_manage_guild",
    "can_manage_settings",
    "is_valid_snowflake",
]
