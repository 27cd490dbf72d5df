"""One-time-code challenge issuance and verification for the second login factor."""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from uuid import UUID, uuid4

from identity_vault.application.ports.challenge_store_port import ChallengeStorePort
from identity_vault.application.ports.mail_sender_port import MailSenderPort
from identity_vault.domain.auth.email_mask import mask_email
from identity_vault.domain.errors import ExpiredError, InputError, NotFoundError
from identity_vault.domain.mfa.challenge import ChallengeState, MfaChallenge

DEFAULT_CODE_LENGTH = 6
DEFAULT_CODE_TTL = timedelta(minutes=5)
DEFAULT_MAX_ATTEMPTS = 5

NowCallable = Callable[[], datetime]
logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


class MfaIssueOutcome(StrEnum):
    """Supported challenge issuance outcomes."""

    ISSUED = "issued"
    DELIVERY_FAILED = "delivery_failed"


@dataclass(frozen=True)
class MfaIssueResult:
    """Challenge issuance result model."""

    outcome: MfaIssueOutcome
    masked_destination: str | None = None
    ttl_seconds: int | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is MfaIssueOutcome.ISSUED


class MfaVerifyOutcome(StrEnum):
    """Outcomes returned by code verification that leave no exception."""

    VERIFIED = "verified"
    INVALID_CODE = "invalid_code"
    ATTEMPTS_EXHAUSTED = "attempts_exhausted"


@dataclass(frozen=True)
class MfaVerifyResult:
    """Code verification result model."""

    outcome: MfaVerifyOutcome
    state: ChallengeState

    @property
    def ok(self) -> bool:
        return self.outcome is MfaVerifyOutcome.VERIFIED


def generate_numeric_code(length: int) -> str:
    """Return `length` random decimal digits."""

    return "".join(str(secrets.randbelow(10)) for _ in range(length))


class MfaChallengeManager:
    """Issue, deliver and verify short-lived numeric codes keyed by user id."""

    def __init__(
        self,
        *,
        store: ChallengeStorePort,
        mail_sender: MailSenderPort,
        code_length: int = DEFAULT_CODE_LENGTH,
        code_ttl: timedelta = DEFAULT_CODE_TTL,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        product_name: str = "Identity Vault",
        code_factory: Callable[[int], str] | None = None,
        now: NowCallable = _utc_now,
    ) -> None:
        self._store = store
        self._mail_sender = mail_sender
        self._code_length = code_length
        self._code_ttl = code_ttl
        self._max_attempts = max_attempts
        self._product_name = product_name
        self._code_factory = code_factory or generate_numeric_code
        self._now = now

    async def issue(self, *, user_id: UUID | str, email: str) -> MfaIssueResult:
        """Deliver a fresh code and store it only after delivery succeeded."""

        if not str(user_id).strip() or not email:
            raise InputError("user id and email are required")

        user_key = str(user_id)
        code = self._code_factory(self._code_length)
        ttl_seconds = int(self._code_ttl.total_seconds())
        challenge = MfaChallenge(
            challenge_id=uuid4().hex,
            code=code,
            expires_at=self._now() + self._code_ttl,
            destination=email,
        )

        delivered = await self._mail_sender.deliver(
            to_address=email,
            subject=f"Your {self._product_name} login code",
            body=(
                f"Your login verification code is: {code}\n"
                f"This code expires in {max(ttl_seconds // 60, 1)} minutes."
            ),
        )
        if not delivered:
            logger.warning("mfa_challenge_delivery_failed user_id=%s", user_key)
            return MfaIssueResult(outcome=MfaIssueOutcome.DELIVERY_FAILED)

        await self._store.put(user_key=user_key, challenge=challenge)
        logger.info("mfa_challenge_issued user_id=%s ttl_seconds=%s", user_key, ttl_seconds)
        return MfaIssueResult(
            outcome=MfaIssueOutcome.ISSUED,
            masked_destination=mask_email(email),
            ttl_seconds=ttl_seconds,
        )

    async def verify(self, *, user_id: UUID | str, code: str | None) -> MfaVerifyResult:
        """Check one supplied code against the live challenge.

        Raises `NotFoundError` when no challenge exists and `ExpiredError` (after
        discarding the entry) when it lapsed. A wrong code keeps the challenge for
        another attempt until `max_attempts` failures discard it.
        """

        user_key = str(user_id)
        supplied = (code or "").strip()

        while True:
            challenge = await self._store.get(user_key=user_key)
            if challenge is None:
                raise NotFoundError("no challenge in progress")

            if challenge.is_expired(now=self._now()):
                await self._store.compare_and_set(user_key=user_key, expected=challenge, new=None)
                logger.info("mfa_challenge_expired user_id=%s", user_key)
                raise ExpiredError("code expired")

            if supplied and secrets.compare_digest(
                supplied.encode("utf-8"), challenge.code.encode("utf-8")
            ):
                if await self._store.compare_and_set(
                    user_key=user_key, expected=challenge, new=None
                ):
                    logger.info("mfa_challenge_verified user_id=%s", user_key)
                    return MfaVerifyResult(
                        outcome=MfaVerifyOutcome.VERIFIED,
                        state=ChallengeState.VERIFIED,
                    )
                continue

            failed = challenge.with_failed_attempt()
            exhausted = failed.failed_attempts >= self._max_attempts
            replacement = None if exhausted else failed
            if not await self._store.compare_and_set(
                user_key=user_key, expected=challenge, new=replacement
            ):
                # Entry was replaced concurrently; evaluate against the current one.
                continue

            if exhausted:
                logger.warning(
                    "mfa_challenge_attempts_exhausted user_id=%s attempts=%s",
                    user_key,
                    failed.failed_attempts,
                )
                return MfaVerifyResult(
                    outcome=MfaVerifyOutcome.ATTEMPTS_EXHAUSTED,
                    state=ChallengeState.FAILED,
                )
            return MfaVerifyResult(
                outcome=MfaVerifyOutcome.INVALID_CODE,
                state=ChallengeState.PENDING,
            )

    async def purge_expired(self) -> int:
        """Reclaim entries of abandoned challenges."""

        removed = await self._store.purge_expired(now=self._now())
        if removed:
            logger.info("mfa_challenges_purged count=%s", removed)
        return removed
