"""Value types for the per-user one-time-code challenge."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import StrEnum


class ChallengeState(StrEnum):
    """States reported after a verification attempt.

    A user with no stored entry has no challenge in progress; a lapsed entry is
    discarded and reported through `ExpiredError`.
    """

    PENDING = "pending"
    VERIFIED = "verified"
    FAILED = "failed"


@dataclass(frozen=True)
class MfaChallenge:
    """Live challenge stored between login step one and step two."""

    challenge_id: str
    code: str
    expires_at: datetime
    destination: str
    failed_attempts: int = 0

    def is_expired(self, *, now: datetime) -> bool:
        """Return whether the challenge lapsed strictly before `now`."""

        return now > self.expires_at

    def with_failed_attempt(self) -> MfaChallenge:
        """Return a copy recording one more failed comparison."""

        return replace(self, failed_attempts=self.failed_attempts + 1)
