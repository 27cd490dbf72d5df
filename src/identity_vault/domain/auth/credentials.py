"""Shared normalization helpers for user credential inputs."""

from __future__ import annotations

from identity_vault.domain.errors import InputError


def normalize_lookup_value(*, value: str | None) -> str:
    """Normalize a searchable identity value (email or username) and reject blanks."""

    normalized = (value or "").strip().lower()
    if not normalized:
        raise InputError("lookup value cannot be blank")
    return normalized


def require_email(*, email: str | None) -> str:
    """Return the trimmed email or raise when it is missing."""

    cleaned = (email or "").strip()
    if not cleaned:
        raise InputError("email is required")
    return cleaned


def require_password(*, password: str | None) -> str:
    """Return the password unchanged or raise when it is missing."""

    if not password:
        raise InputError("password is required")
    return password
