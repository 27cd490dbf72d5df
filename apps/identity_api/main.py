"""identity-api entrypoint and HTTP route wiring."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from datetime import timedelta

import uvicorn
from fastapi import FastAPI
from starlette.middleware.sessions import SessionMiddleware

from identity_vault.application.ports.user_repository_port import UserRepositoryPort
from identity_vault.application.services.access_guard_service import AccessGuardService
from identity_vault.application.services.admin_bootstrap_service import (
    AdminBootstrapConfig,
    ensure_initial_admin_user,
    resolve_admin_bootstrap_config,
)
from identity_vault.application.services.challenge_sweeper import ChallengeSweeper
from identity_vault.application.services.identity_service import IdentityService
from identity_vault.application.services.mfa_service import MfaChallengeManager
from identity_vault.application.services.role_assignment_service import RoleAssignmentService
from identity_vault.config.settings import Settings, load_settings
from identity_vault.infrastructure.db.session import create_session_factory
from identity_vault.infrastructure.db.user_repository import SqlAlchemyUserRepository
from identity_vault.infrastructure.http.access_router import build_access_router
from identity_vault.infrastructure.http.admin_router import build_admin_router
from identity_vault.infrastructure.http.auth_router import build_auth_router
from identity_vault.infrastructure.logging import configure_logging
from identity_vault.infrastructure.mail.smtp_mail_sender import SmtpMailSender
from identity_vault.infrastructure.mfa.in_memory_challenge_store import InMemoryChallengeStore
from identity_vault.infrastructure.security.field_cipher import AesGcmFieldCipher
from identity_vault.infrastructure.security.lookup_indexer import HmacLookupIndexer
from identity_vault.infrastructure.security.password_hasher import BcryptPasswordHasher

IDENTITY_API_HOST = "0.0.0.0"
IDENTITY_API_PORT = 8000
logger = logging.getLogger(__name__)


def build_mfa_manager(settings: Settings) -> MfaChallengeManager:
    """Build challenge manager with in-process storage and SMTP delivery."""

    return MfaChallengeManager(
        store=InMemoryChallengeStore(),
        mail_sender=SmtpMailSender(
            host=settings.smtp_host,
            port=settings.smtp_port,
            sender_address=settings.from_email,
            password=settings.email_app_pass,
            use_tls=settings.smtp_use_tls,
            timeout_seconds=settings.smtp_timeout_seconds,
        ),
        code_length=settings.mfa_code_length,
        code_ttl=timedelta(seconds=settings.mfa_code_ttl_seconds),
        max_attempts=settings.mfa_max_attempts,
        product_name=settings.mfa_email_product_name,
    )


def build_identity_service(
    settings: Settings,
    *,
    users: UserRepositoryPort,
    mfa: MfaChallengeManager,
) -> IdentityService:
    """Build identity service over configured key material and bcrypt cost."""

    return IdentityService(
        users=users,
        field_cipher=AesGcmFieldCipher(key_b64=settings.data_key_b64),
        lookup_indexer=HmacLookupIndexer(key_b64=settings.index_key_b64),
        password_hasher=BcryptPasswordHasher(rounds=settings.bcrypt_cost),
        mfa=mfa,
    )


def create_app(
    *,
    identity_service: IdentityService | None = None,
    users: UserRepositoryPort | None = None,
    mfa_manager: MfaChallengeManager | None = None,
    role_assignment_service: RoleAssignmentService | None = None,
    session_secret: str | None = None,
    database_url: str | None = None,
    admin_bootstrap: AdminBootstrapConfig | None = None,
    sweep_interval_seconds: float | None = None,
) -> FastAPI:
    """Create FastAPI app for registration, MFA login and access checks."""

    settings = None
    if (
        session_secret is None
        or identity_service is None
        or mfa_manager is None
        or (users is None and database_url is None)
    ):
        settings = load_settings()
        configure_logging(level=settings.log_level)
        if session_secret is None:
            session_secret = settings.session_secret
        if database_url is None:
            database_url = settings.database_url
        if sweep_interval_seconds is None:
            sweep_interval_seconds = settings.mfa_sweep_interval_seconds
        if admin_bootstrap is None:
            admin_bootstrap = resolve_admin_bootstrap_config(
                email=settings.bootstrap_admin_email,
                password=settings.bootstrap_admin_password,
                password_file=settings.bootstrap_admin_password_file,
            )

    if users is None:
        assert database_url is not None
        users = SqlAlchemyUserRepository(create_session_factory(database_url))
    if mfa_manager is None:
        assert settings is not None
        mfa_manager = build_mfa_manager(settings)
    if identity_service is None:
        assert settings is not None
        identity_service = build_identity_service(settings, users=users, mfa=mfa_manager)
    if role_assignment_service is None:
        role_assignment_service = RoleAssignmentService(users=users)

    assert session_secret is not None
    access_guard = AccessGuardService()
    sweeper = (
        ChallengeSweeper(mfa=mfa_manager, interval_seconds=sweep_interval_seconds)
        if sweep_interval_seconds
        else None
    )

    @contextlib.asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        if admin_bootstrap is not None:
            result = await ensure_initial_admin_user(
                users=users,
                identity_service=identity_service,
                config=admin_bootstrap,
            )
            logger.info("admin_bootstrap_finished outcome=%s", result.outcome.value)

        stop_event = asyncio.Event()
        sweeper_task = (
            asyncio.create_task(sweeper.run_until_stopped(stop_event)) if sweeper else None
        )
        try:
            yield
        finally:
            stop_event.set()
            if sweeper_task is not None:
                sweeper_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await sweeper_task

    app = FastAPI(lifespan=lifespan)
    app.add_middleware(SessionMiddleware, secret_key=session_secret, same_site="lax")
    app.include_router(
        build_auth_router(identity_service=identity_service, access_guard=access_guard)
    )
    app.include_router(
        build_admin_router(
            role_assignment_service=role_assignment_service,
            users=users,
            access_guard=access_guard,
        )
    )
    app.include_router(build_access_router(access_guard=access_guard))
    return app


def run_asgi_server(*, host: str = IDENTITY_API_HOST, port: int = IDENTITY_API_PORT) -> None:
    """Run identity-api as a long-lived ASGI process using application factory mode."""

    uvicorn.run(
        "apps.identity_api.main:create_app",
        host=host,
        port=port,
        factory=True,
    )


def main() -> None:
    """Run identity-api runtime process."""

    run_asgi_server()


if __name__ == "__main__":
    main()
