"""Port for per-user MFA challenge storage."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from identity_vault.domain.mfa.challenge import MfaChallenge


class ChallengeStorePort(Protocol):
    """Keyed challenge store with atomic per-key updates.

    Implementations must apply `put` and `compare_and_set` atomically per user key so
    that concurrent issue and verify calls observe either the old or the new entry.
    """

    async def get(self, *, user_key: str) -> MfaChallenge | None:
        """Return the live entry for one user, if any."""

    async def put(self, *, user_key: str, challenge: MfaChallenge) -> None:
        """Store a challenge, replacing any previous entry for the same user."""

    async def compare_and_set(
        self,
        *,
        user_key: str,
        expected: MfaChallenge,
        new: MfaChallenge | None,
    ) -> bool:
        """Replace (or delete when `new` is None) only if the entry still equals `expected`."""

    async def purge_expired(self, *, now: datetime) -> int:
        """Delete entries expired at `now` and return how many were removed."""
