"""FastAPI router for registration, two-step login, profile and logout."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request

from identity_vault.application.dto.auth_models import (
    LoginRequest,
    LoginResponse,
    LogoutResponse,
    ProfileEnvelope,
    ProfileResponse,
    RegisterRequest,
    RegisterResponse,
    VerifyMfaRequest,
    VerifyMfaResponse,
)
from identity_vault.application.services.access_guard_service import AccessGuardService
from identity_vault.application.services.identity_service import IdentityService, LoginOutcome
from identity_vault.domain.auth.roles import Role, normalize_role
from identity_vault.domain.errors import ForbiddenError, IdentityVaultError
from identity_vault.infrastructure.http.auth_guard import (
    require_login,
    require_mfa_user,
    resolve_request_role,
)
from identity_vault.infrastructure.http.error_mapping import raise_http_for_identity_error
from identity_vault.infrastructure.http.session_state import (
    SessionUser,
    clear_session,
    complete_login,
    read_pending_login,
    store_pending_login,
)

logger = logging.getLogger(__name__)


def build_auth_router(
    *,
    identity_service: IdentityService,
    access_guard: AccessGuardService | None = None,
) -> APIRouter:
    """Build router exposing the `/auth` endpoints."""

    guard = access_guard or AccessGuardService()
    router = APIRouter(prefix="/auth", tags=["auth"])

    @router.post("/register", status_code=201, response_model=RegisterResponse)
    async def register(payload: RegisterRequest, request: Request) -> RegisterResponse:
        if payload.role is not None and normalize_role(payload.role) is not Role.PUBLIC:
            caller_role = resolve_request_role(request)
            try:
                guard.require_role_assignment(role=caller_role)
            except ForbiddenError as exc:
                raise HTTPException(status_code=403, detail=str(exc)) from exc

        try:
            user_id = await identity_service.create_account(
                email=payload.email,
                password=payload.password,
                username=payload.username,
                role_hint=payload.role,
            )
        except IdentityVaultError as exc:
            raise_http_for_identity_error(exc)
        return RegisterResponse(ok=True, user_id=user_id)

    @router.post("/login", response_model=LoginResponse)
    async def login(payload: LoginRequest, request: Request) -> LoginResponse:
        try:
            result = await identity_service.start_login(
                email=payload.email,
                password=payload.password,
            )
        except IdentityVaultError as exc:
            raise_http_for_identity_error(exc)

        if result.outcome is LoginOutcome.INVALID_CREDENTIALS:
            raise HTTPException(status_code=401, detail=result.message)
        if result.outcome is LoginOutcome.DELIVERY_FAILED:
            raise HTTPException(status_code=502, detail=result.message)

        assert result.pending is not None
        assert result.masked_destination is not None
        store_pending_login(request, result.pending)
        return LoginResponse(
            ok=True,
            mfa_required=True,
            code_sent_to=result.masked_destination,
            expires_in_seconds=result.ttl_seconds,
        )

    @router.post("/verify-mfa", response_model=VerifyMfaResponse)
    async def verify_mfa(payload: VerifyMfaRequest, request: Request) -> VerifyMfaResponse:
        pending = read_pending_login(request)
        if pending is None:
            raise HTTPException(status_code=401, detail="No login in progress")

        try:
            result = await identity_service.verify_login_code(
                user_id=pending.user_id,
                code=payload.code,
            )
        except IdentityVaultError as exc:
            raise_http_for_identity_error(exc)
        if not result.ok:
            raise HTTPException(status_code=401, detail=result.message)

        complete_login(request, pending)
        logger.info("login_completed user_id=%s", pending.user_id)
        return VerifyMfaResponse(ok=True, logged_in=True)

    @router.get("/me", response_model=ProfileEnvelope)
    async def get_profile(
        user: Annotated[SessionUser, Depends(require_mfa_user)],
    ) -> ProfileEnvelope:
        try:
            profile = await identity_service.get_profile(user_id=user.user_id)
        except IdentityVaultError as exc:
            raise_http_for_identity_error(exc)
        if profile is None:
            raise HTTPException(status_code=404, detail="User not found")

        return ProfileEnvelope(
            ok=True,
            user=ProfileResponse(
                id=profile.user_id,
                role_id=profile.role_id,
                role=profile.role.value,
                email=profile.email,
                username=profile.username,
            ),
        )

    @router.post("/logout", response_model=LogoutResponse)
    async def logout(
        request: Request,
        _user: Annotated[SessionUser, Depends(require_login)],
    ) -> LogoutResponse:
        result = identity_service.sign_out()
        clear_session(request)
        return LogoutResponse(ok=result.ok)

    return router
