"""Pydantic models for identity HTTP request and response contracts."""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, ConfigDict


class StrictModel(BaseModel):
    """Base model with strict unknown-field rejection."""

    model_config = ConfigDict(extra="forbid")


class RegisterRequest(StrictModel):
    """Account registration payload; presence checks happen in the service."""

    email: str | None = None
    username: str | None = None
    password: str | None = None
    role: str | None = None


class RegisterResponse(StrictModel):
    """Registration acknowledgement."""

    ok: bool
    user_id: UUID


class LoginRequest(StrictModel):
    """Login step one payload."""

    email: str | None = None
    password: str | None = None


class LoginResponse(StrictModel):
    """Login step one acknowledgement when a code was sent."""

    ok: bool
    mfa_required: bool
    code_sent_to: str
    expires_in_seconds: int | None = None


class VerifyMfaRequest(StrictModel):
    """Login step two payload."""

    code: str | None = None


class VerifyMfaResponse(StrictModel):
    """Login step two acknowledgement."""

    ok: bool
    logged_in: bool


class ProfileResponse(StrictModel):
    """Decrypted profile of the signed-in user."""

    id: UUID
    role_id: int | None
    role: str
    email: str | None
    username: str | None


class ProfileEnvelope(StrictModel):
    """Profile lookup response wrapper."""

    ok: bool
    user: ProfileResponse


class LogoutResponse(StrictModel):
    """Logout acknowledgement."""

    ok: bool


class AssignRoleRequest(StrictModel):
    """Admin role-assignment payload."""

    role: str | None = None


class AssignedUserResponse(StrictModel):
    """User summary returned after a role change."""

    user_id: UUID
    role_id: int | None
    role_name: str | None


class AssignRoleResponse(StrictModel):
    """Role-assignment acknowledgement."""

    ok: bool
    user: AssignedUserResponse


class TableAccessResponse(StrictModel):
    """Outcome of one table-view access check."""

    table: str
    scope: str
    role: str
    permission: str
    allowed: bool


class DecryptAccessResponse(StrictModel):
    """Outcome of one decrypted-payload access check."""

    role: str
    allowed: bool
