"""FastAPI router answering table-view access checks for the current caller."""

from __future__ import annotations

from fastapi import APIRouter, Query, Request

from identity_vault.application.dto.auth_models import DecryptAccessResponse, TableAccessResponse
from identity_vault.application.services.access_guard_service import AccessGuardService
from identity_vault.domain.auth.permissions import TableScope
from identity_vault.domain.errors import ForbiddenError
from identity_vault.infrastructure.http.auth_guard import resolve_request_role
from identity_vault.infrastructure.http.error_mapping import raise_http_for_identity_error


def build_access_router(*, access_guard: AccessGuardService | None = None) -> APIRouter:
    """Build router for read-only table and decrypt access checks usable without a session."""

    guard = access_guard or AccessGuardService()
    router = APIRouter(prefix="/access", tags=["access"])

    @router.get("/tables/{table_name}", response_model=TableAccessResponse)
    async def check_table_view(
        table_name: str,
        request: Request,
        scope: str = Query(default=TableScope.PUBLIC.value),
    ) -> TableAccessResponse:
        role = resolve_request_role(request, allow_untrusted_hints=True)
        try:
            permission = guard.require_table_view(role=role, table_name=table_name, scope=scope)
        except ForbiddenError as exc:
            raise_http_for_identity_error(exc)

        return TableAccessResponse(
            table=table_name.strip().lower(),
            scope=scope.strip().lower(),
            role=role.value,
            permission=permission.value,
            allowed=True,
        )

    @router.get("/decrypt", response_model=DecryptAccessResponse)
    async def check_decrypt_access(request: Request) -> DecryptAccessResponse:
        role = resolve_request_role(request, allow_untrusted_hints=True)
        try:
            guard.require_decrypt_access(role=role)
        except ForbiddenError as exc:
            raise_http_for_identity_error(exc)

        return DecryptAccessResponse(role=role.value, allowed=True)

    return router
