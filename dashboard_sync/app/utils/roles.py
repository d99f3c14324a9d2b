"""
User role lookup.
"""

from enum import Enum
from typing import Any, Mapping, Optional

from shared.logging import get_logger

logger = get_logger("dashboard_sync.utils.roles")


class UserRole(str, Enum):
    VIEWER = "viewer"
    EDITOR = "editor"
    ADMIN = "admin"


DEFAULT_ROLE = UserRole.VIEWER


def role_from_metadata(metadata: Optional[Mapping[str, Any]]) -> UserRole:
    """Role stored under ``role`` in user metadata; unknown or missing means viewer."""
    raw = (metadata or {}).get("role")
    if raw is None:
        return DEFAULT_ROLE
    try:
        return UserRole(str(raw).lower())
    except ValueError:
        logger.warning("Unknown user role, defaulting to viewer", role=raw)
        return DEFAULT_ROLE


def can_edit(role: UserRole) -> bool:
    return role in (UserRole.EDITOR, UserRole.ADMIN)


def can_administer(role: UserRole) -> bool:
    return role is UserRole.ADMIN
