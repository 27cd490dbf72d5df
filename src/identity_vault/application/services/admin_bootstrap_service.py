"""Bootstrap helper for creating an initial admin account at startup."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from identity_vault.application.ports.user_repository_port import (
    DuplicateUserError,
    UserRepositoryPort,
)
from identity_vault.application.services.identity_service import IdentityService
from identity_vault.domain.auth.roles import Role


class AdminBootstrapConfigError(ValueError):
    """Raised when bootstrap-admin environment configuration is invalid."""


@dataclass(frozen=True)
class AdminBootstrapConfig:
    """Runtime configuration for one-time admin bootstrap."""

    email: str
    password: str


class AdminBootstrapOutcome(StrEnum):
    """Outcome states for initial admin bootstrap execution."""

    CREATED = "created"
    SKIPPED_USERS_PRESENT = "skipped_users_present"
    SKIPPED_CONCURRENT_INSERT = "skipped_concurrent_insert"


@dataclass(frozen=True)
class AdminBootstrapResult:
    """Result model for one initial-admin bootstrap attempt."""

    outcome: AdminBootstrapOutcome


def resolve_admin_bootstrap_config(
    *,
    email: str | None,
    password: str | None,
    password_file: str | None,
) -> AdminBootstrapConfig | None:
    """Resolve bootstrap-admin config from env values or return None when disabled."""

    any_value_set = any(value is not None for value in (email, password, password_file))
    if email is None:
        if any_value_set:
            raise AdminBootstrapConfigError(
                "BOOTSTRAP_ADMIN_EMAIL is required when bootstrap-admin variables are set"
            )
        return None

    if password is not None and password_file is not None:
        raise AdminBootstrapConfigError(
            "set only one of BOOTSTRAP_ADMIN_PASSWORD or BOOTSTRAP_ADMIN_PASSWORD_FILE"
        )

    resolved_password: str | None = None
    if password_file is not None:
        try:
            resolved_password = Path(password_file).read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise AdminBootstrapConfigError(
                "failed to read BOOTSTRAP_ADMIN_PASSWORD_FILE"
            ) from exc
    elif password is not None:
        resolved_password = password

    if not resolved_password:
        raise AdminBootstrapConfigError(
            "set BOOTSTRAP_ADMIN_PASSWORD or BOOTSTRAP_ADMIN_PASSWORD_FILE "
            "when BOOTSTRAP_ADMIN_EMAIL is set"
        )
    if not email.strip():
        raise AdminBootstrapConfigError("BOOTSTRAP_ADMIN_EMAIL cannot be blank")

    return AdminBootstrapConfig(email=email.strip(), password=resolved_password)


async def ensure_initial_admin_user(
    *,
    users: UserRepositoryPort,
    identity_service: IdentityService,
    config: AdminBootstrapConfig,
) -> AdminBootstrapResult:
    """Create initial `admin` user when no account exists, otherwise skip."""

    if await users.count_users() > 0:
        return AdminBootstrapResult(outcome=AdminBootstrapOutcome.SKIPPED_USERS_PRESENT)

    try:
        await identity_service.create_account(
            email=config.email,
            password=config.password,
            role_hint=Role.ADMIN.value,
        )
    except DuplicateUserError:
        return AdminBootstrapResult(outcome=AdminBootstrapOutcome.SKIPPED_CONCURRENT_INSERT)

    return AdminBootstrapResult(outcome=AdminBootstrapOutcome.CREATED)
