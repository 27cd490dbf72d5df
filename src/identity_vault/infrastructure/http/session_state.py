"""Typed helpers over the signed-cookie session that tracks login progress."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from uuid import UUID

from starlette.requests import Request

from identity_vault.application.services.identity_service import PendingLogin
from identity_vault.domain.auth.roles import Role, normalize_role

PENDING_LOGIN_KEY = "mfa_pending_user"
AUTHENTICATED_USER_KEY = "user"
MFA_VERIFIED_KEY = "mfa_verified"


@dataclass(frozen=True)
class SessionUser:
    """Identity restored from session state."""

    user_id: UUID
    role_id: int | None
    role: Role


def store_pending_login(request: Request, pending: PendingLogin) -> None:
    """Remember the user awaiting a second factor and drop any prior sign-in."""

    request.session.pop(AUTHENTICATED_USER_KEY, None)
    request.session.pop(MFA_VERIFIED_KEY, None)
    request.session[PENDING_LOGIN_KEY] = _serialize(
        user_id=pending.user_id,
        role_id=pending.role_id,
        role=pending.role,
    )


def read_pending_login(request: Request) -> SessionUser | None:
    """Return the user awaiting a second factor, if any."""

    return _deserialize(request.session.get(PENDING_LOGIN_KEY))


def complete_login(request: Request, user: SessionUser) -> None:
    """Promote the pending user to a signed-in user with the second factor done."""

    request.session.pop(PENDING_LOGIN_KEY, None)
    request.session[AUTHENTICATED_USER_KEY] = _serialize(
        user_id=user.user_id,
        role_id=user.role_id,
        role=user.role,
    )
    request.session[MFA_VERIFIED_KEY] = True


def read_authenticated_user(request: Request) -> SessionUser | None:
    """Return the signed-in user, if any, regardless of second-factor state."""

    return _deserialize(request.session.get(AUTHENTICATED_USER_KEY))


def is_mfa_verified(request: Request) -> bool:
    """Return whether this session completed the second factor."""

    return request.session.get(MFA_VERIFIED_KEY) is True


def clear_session(request: Request) -> None:
    """Forget all login state for this caller."""

    request.session.clear()


def _serialize(*, user_id: UUID, role_id: int | None, role: Role) -> dict[str, Any]:
    return {"id": str(user_id), "role_id": role_id, "role": role.value}


def _deserialize(raw: object) -> SessionUser | None:
    if not isinstance(raw, dict) or not raw.get("id"):
        return None
    try:
        user_id = UUID(str(raw["id"]))
    except ValueError:
        return None
    role_id = raw.get("role_id")
    return SessionUser(
        user_id=user_id,
        role_id=role_id if isinstance(role_id, int) else None,
        role=normalize_role(raw.get("role")),
    )
