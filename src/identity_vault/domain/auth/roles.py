"""Closed role enumeration and normalization of external role text."""

from __future__ import annotations

from enum import StrEnum


class Role(StrEnum):
    """Supported user roles, ordered from most to least privileged."""

    ADMIN = "admin"
    RESEARCHER = "researcher"
    PUBLIC = "public"


DEFAULT_ROLE = Role.PUBLIC

# Legacy role names still found in older rows and clients.
_ROLE_ALIASES: dict[str, Role] = {"user": Role.PUBLIC}


def parse_role_name(value: str | None) -> Role | None:
    """Return the role named by `value`, or None when the name is not recognized."""

    if value is None:
        return None
    cleaned = value.strip().lower()
    if cleaned in _ROLE_ALIASES:
        return _ROLE_ALIASES[cleaned]
    try:
        return Role(cleaned)
    except ValueError:
        return None


def normalize_role(value: str | None) -> Role:
    """Map arbitrary role text to a role, falling back to the lowest privilege."""

    return parse_role_name(value) or DEFAULT_ROLE
