"""Account creation, two-step login and profile use-cases over protected user rows."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID

from identity_vault.application.ports.field_cipher_port import FieldCipherPort
from identity_vault.application.ports.lookup_indexer_port import LookupIndexerPort
from identity_vault.application.ports.password_hasher_port import PasswordHasherPort
from identity_vault.application.ports.user_repository_port import (
    UserCreateInput,
    UserRecord,
    UserRepositoryPort,
)
from identity_vault.application.services.mfa_service import MfaChallengeManager, MfaVerifyOutcome
from identity_vault.domain.auth.credentials import require_email, require_password
from identity_vault.domain.auth.roles import Role, normalize_role
from identity_vault.domain.crypto.bundle import EncryptedBundle
from identity_vault.domain.errors import (
    ConfigurationError,
    ExpiredError,
    InputError,
    IntegrityError,
    NotFoundError,
)

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"
DELIVERY_FAILED_MESSAGE = "Failed to send MFA code"

# Compared against when no account matches, so both failure paths run one bcrypt check.
_UNKNOWN_USER_PASSWORD = "identity-vault-unknown-user"

logger = logging.getLogger(__name__)


class LoginOutcome(StrEnum):
    """Outcomes of login step one."""

    MFA_REQUIRED = "mfa_required"
    INVALID_CREDENTIALS = "invalid_credentials"
    DELIVERY_FAILED = "delivery_failed"


@dataclass(frozen=True)
class PendingLogin:
    """Minimal identity the caller's session keeps between login steps."""

    user_id: UUID
    role_id: int | None
    role: Role


@dataclass(frozen=True)
class LoginStartResult:
    """Login step one result model."""

    outcome: LoginOutcome
    message: str | None = None
    masked_destination: str | None = None
    ttl_seconds: int | None = None
    pending: PendingLogin | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is LoginOutcome.MFA_REQUIRED


class CodeVerificationOutcome(StrEnum):
    """Outcomes of login step two."""

    VERIFIED = "verified"
    INVALID_CODE = "invalid_code"
    EXPIRED = "expired"
    NO_CHALLENGE = "no_challenge"
    ATTEMPTS_EXHAUSTED = "attempts_exhausted"


_VERIFY_MESSAGES: dict[CodeVerificationOutcome, str] = {
    CodeVerificationOutcome.INVALID_CODE: "Incorrect code",
    CodeVerificationOutcome.EXPIRED: "MFA code expired",
    CodeVerificationOutcome.NO_CHALLENGE: "No MFA was requested",
    CodeVerificationOutcome.ATTEMPTS_EXHAUSTED: "Too many incorrect codes; sign in again",
}


@dataclass(frozen=True)
class CodeVerificationResult:
    """Login step two result model."""

    outcome: CodeVerificationOutcome
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is CodeVerificationOutcome.VERIFIED


@dataclass(frozen=True)
class UserProfile:
    """Decrypted profile returned to an already-authenticated caller."""

    user_id: UUID
    role_id: int | None
    role: Role
    email: str | None
    username: str | None


@dataclass(frozen=True)
class SignOutResult:
    """Stateless logout acknowledgement."""

    ok: bool = True


class IdentityService:
    """Orchestrate indexing, sealing, hashing and MFA over the user repository."""

    def __init__(
        self,
        *,
        users: UserRepositoryPort,
        field_cipher: FieldCipherPort,
        lookup_indexer: LookupIndexerPort,
        password_hasher: PasswordHasherPort,
        mfa: MfaChallengeManager,
    ) -> None:
        self._users = users
        self._field_cipher = field_cipher
        self._lookup_indexer = lookup_indexer
        self._password_hasher = password_hasher
        self._mfa = mfa
        self._unknown_user_hash: str | None = None

    async def create_account(
        self,
        *,
        email: str | None,
        password: str | None,
        username: str | None = None,
        role_hint: str | None = None,
    ) -> UUID:
        """Create one account and return its id.

        Every derived value is computed before the insert so that a failed
        indexing or sealing step never leaves a partial row behind.
        """

        clean_email = require_email(email=email)
        clean_password = require_password(password=password)
        clean_username = (username or "").strip() or None

        role_id = await self._resolve_role_id(role_hint=role_hint)
        try:
            password_hash = self._password_hasher.hash_password(clean_password)
            email_index = self._lookup_indexer.index(clean_email)
            username_index = (
                self._lookup_indexer.index(clean_username) if clean_username else None
            )
            email_bundle = self._field_cipher.seal(clean_email)
            username_bundle = self._field_cipher.seal(clean_username) if clean_username else None
        except ConfigurationError:
            logger.error("account_create_misconfigured")
            raise

        user = await self._users.create_user(
            UserCreateInput(
                role_id=role_id,
                email_index=email_index,
                email_bundle_json=email_bundle.to_json(),
                password_hash=password_hash,
                username_index=username_index,
                username_bundle_json=username_bundle.to_json() if username_bundle else None,
            )
        )
        logger.info("account_created user_id=%s role_id=%s", user.user_id, user.role_id)
        return user.user_id

    async def start_login(self, *, email: str | None, password: str | None) -> LoginStartResult:
        """Check the password and deliver a one-time code to the account's email."""

        clean_email = require_email(email=email)
        clean_password = require_password(password=password)

        try:
            email_index = self._lookup_indexer.index(clean_email)
        except ConfigurationError:
            logger.error("login_start_misconfigured")
            raise

        user = await self._users.get_by_email_index(email_index=email_index)
        if user is None:
            self._password_hasher.verify_password(
                password=clean_password,
                password_hash=self._get_unknown_user_hash(),
            )
            logger.info("login_start_rejected reason=invalid_credentials")
            return _invalid_credentials()

        if not self._password_hasher.verify_password(
            password=clean_password,
            password_hash=user.password_hash,
        ):
            logger.info("login_start_rejected user_id=%s reason=invalid_credentials", user.user_id)
            return _invalid_credentials()

        if user.email_bundle_json is None:
            logger.warning("login_start_undeliverable user_id=%s reason=no_email", user.user_id)
            return LoginStartResult(
                outcome=LoginOutcome.DELIVERY_FAILED,
                message=DELIVERY_FAILED_MESSAGE,
            )
        destination = self._open_bundle(user.email_bundle_json, user=user, field="email")

        issued = await self._mfa.issue(user_id=user.user_id, email=destination)
        if not issued.ok:
            return LoginStartResult(
                outcome=LoginOutcome.DELIVERY_FAILED,
                message=DELIVERY_FAILED_MESSAGE,
            )

        return LoginStartResult(
            outcome=LoginOutcome.MFA_REQUIRED,
            masked_destination=issued.masked_destination,
            ttl_seconds=issued.ttl_seconds,
            pending=PendingLogin(
                user_id=user.user_id,
                role_id=user.role_id,
                role=normalize_role(user.role_name),
            ),
        )

    async def verify_login_code(
        self,
        *,
        user_id: UUID | str | None,
        code: str | None,
    ) -> CodeVerificationResult:
        """Translate challenge verification into an ok/failure login result."""

        if not user_id or not (code or "").strip():
            raise InputError("user id and code are required")

        try:
            verified = await self._mfa.verify(user_id=user_id, code=code)
        except NotFoundError:
            return _verification_failure(CodeVerificationOutcome.NO_CHALLENGE)
        except ExpiredError:
            return _verification_failure(CodeVerificationOutcome.EXPIRED)

        if verified.outcome is MfaVerifyOutcome.VERIFIED:
            return CodeVerificationResult(outcome=CodeVerificationOutcome.VERIFIED)
        if verified.outcome is MfaVerifyOutcome.ATTEMPTS_EXHAUSTED:
            return _verification_failure(CodeVerificationOutcome.ATTEMPTS_EXHAUSTED)
        return _verification_failure(CodeVerificationOutcome.INVALID_CODE)

    async def get_profile(self, *, user_id: UUID) -> UserProfile | None:
        """Return decrypted profile fields, or None when the user does not exist."""

        user = await self._users.get_by_id(user_id=user_id)
        if user is None:
            return None

        email = (
            self._open_bundle(user.email_bundle_json, user=user, field="email")
            if user.email_bundle_json
            else None
        )
        username = (
            self._open_bundle(user.username_bundle_json, user=user, field="username")
            if user.username_bundle_json
            else None
        )
        return UserProfile(
            user_id=user.user_id,
            role_id=user.role_id,
            role=normalize_role(user.role_name),
            email=email,
            username=username,
        )

    def sign_out(self) -> SignOutResult:
        """Acknowledge logout; the caller's session layer discards its state."""

        return SignOutResult()

    async def _resolve_role_id(self, *, role_hint: str | None) -> int | None:
        if role_hint is None or not role_hint.strip():
            return None
        role = normalize_role(role_hint)
        role_id = await self._users.get_role_id_by_name(role=role)
        if role_id is None:
            raise ConfigurationError(f"role is not provisioned: {role.value}")
        return role_id

    def _open_bundle(self, raw: str, *, user: UserRecord, field: str) -> str:
        try:
            bundle = EncryptedBundle.from_json(raw)
        except InputError as exc:
            logger.error(
                "security_event=protected_field_malformed user_id=%s field=%s",
                user.user_id,
                field,
            )
            raise IntegrityError("stored encrypted bundle is malformed") from exc

        try:
            return self._field_cipher.open(bundle)
        except IntegrityError:
            logger.error(
                "security_event=protected_field_integrity_failure user_id=%s field=%s",
                user.user_id,
                field,
            )
            raise
        except ConfigurationError:
            logger.error("protected_field_open_misconfigured field=%s", field)
            raise

    def _get_unknown_user_hash(self) -> str:
        if self._unknown_user_hash is None:
            self._unknown_user_hash = self._password_hasher.hash_password(_UNKNOWN_USER_PASSWORD)
        return self._unknown_user_hash


def _invalid_credentials() -> LoginStartResult:
    return LoginStartResult(
        outcome=LoginOutcome.INVALID_CREDENTIALS,
        message=INVALID_CREDENTIALS_MESSAGE,
    )


def _verification_failure(outcome: CodeVerificationOutcome) -> CodeVerificationResult:
    return CodeVerificationResult(outcome=outcome, message=_VERIFY_MESSAGES[outcome])
