"""Session-based sign-in guards and role resolution for HTTP endpoints."""

from __future__ import annotations

from fastapi import HTTPException, Request

from identity_vault.domain.auth.role_resolution import RoleSignals, resolve_role
from identity_vault.domain.auth.roles import Role
from identity_vault.infrastructure.http.session_state import (
    SessionUser,
    is_mfa_verified,
    read_authenticated_user,
)

ROLE_HINT_HEADER = "x-user-role"


def require_login(request: Request) -> SessionUser:
    """Resolve the signed-in user or reject with 401."""

    user = read_authenticated_user(request)
    if user is None:
        raise HTTPException(status_code=401, detail="Login required")
    return user


def require_mfa_user(request: Request) -> SessionUser:
    """Resolve a signed-in user whose second factor completed, or reject with 401."""

    user = require_login(request)
    if not is_mfa_verified(request):
        raise HTTPException(status_code=401, detail="MFA required")
    return user


def resolve_request_role(
    request: Request,
    *,
    body_hint: str | None = None,
    allow_untrusted_hints: bool = False,
) -> Role:
    """Resolve the caller role; hints only count when no verified session exists."""

    user = read_authenticated_user(request) if is_mfa_verified(request) else None
    signals = RoleSignals(
        session_role=user.role.value if user is not None else None,
        header_hint=request.headers.get(ROLE_HINT_HEADER),
        query_hint=request.query_params.get("role"),
        body_hint=body_hint,
    )
    return resolve_role(signals, allow_untrusted_hints=allow_untrusted_hints)
