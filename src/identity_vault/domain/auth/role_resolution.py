"""Precedence chain resolving the effective caller role from request signals."""

from __future__ import annotations

from dataclasses import dataclass

from identity_vault.domain.auth.roles import DEFAULT_ROLE, Role, normalize_role


@dataclass(frozen=True)
class RoleSignals:
    """Role evidence gathered from one request.

    `session_role` comes from an authenticated session and is trusted. The hint
    fields are caller-controlled and only meaningful on unauthenticated read paths.
    """

    session_role: str | None = None
    header_hint: str | None = None
    query_hint: str | None = None
    body_hint: str | None = None


def resolve_role(signals: RoleSignals, *, allow_untrusted_hints: bool = False) -> Role:
    """Return the effective role; an authenticated session always wins over hints."""

    if signals.session_role is not None:
        return normalize_role(signals.session_role)
    if not allow_untrusted_hints:
        return DEFAULT_ROLE

    for hint in (signals.header_hint, signals.query_hint, signals.body_hint):
        if hint is not None and hint.strip():
            return normalize_role(hint)
    return DEFAULT_ROLE
