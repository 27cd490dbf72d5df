"""FastAPI router for admin role management."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException

from identity_vault.application.dto.auth_models import (
    AssignedUserResponse,
    AssignRoleRequest,
    AssignRoleResponse,
)
from identity_vault.application.ports.user_repository_port import UserRepositoryPort
from identity_vault.application.services.access_guard_service import AccessGuardService
from identity_vault.application.services.role_assignment_service import RoleAssignmentService
from identity_vault.domain.auth.roles import normalize_role
from identity_vault.domain.errors import IdentityVaultError
from identity_vault.infrastructure.http.auth_guard import require_mfa_user
from identity_vault.infrastructure.http.error_mapping import raise_http_for_identity_error
from identity_vault.infrastructure.http.session_state import SessionUser


def build_admin_router(
    *,
    role_assignment_service: RoleAssignmentService,
    users: UserRepositoryPort,
    access_guard: AccessGuardService | None = None,
) -> APIRouter:
    """Build router exposing admin-only user role endpoints."""

    guard = access_guard or AccessGuardService()
    router = APIRouter(prefix="/admin", tags=["admin"])

    @router.put("/users/{user_id}/role", response_model=AssignRoleResponse)
    async def assign_user_role(
        user_id: UUID,
        payload: AssignRoleRequest,
        actor: Annotated[SessionUser, Depends(require_mfa_user)],
    ) -> AssignRoleResponse:
        # Authorize against the stored role; the session copy can be stale.
        actor_record = await users.get_by_id(user_id=actor.user_id)
        if actor_record is None:
            raise HTTPException(status_code=401, detail="Login required")

        try:
            guard.require_role_assignment(role=normalize_role(actor_record.role_name))
            updated = await role_assignment_service.assign_role(
                actor_user_id=actor.user_id,
                target_user_id=user_id,
                role_name=payload.role,
            )
        except IdentityVaultError as exc:
            raise_http_for_identity_error(exc)

        return AssignRoleResponse(
            ok=True,
            user=AssignedUserResponse(
                user_id=updated.user_id,
                role_id=updated.role_id,
                role_name=updated.role_name.value if updated.role_name else None,
            ),
        )

    return router
