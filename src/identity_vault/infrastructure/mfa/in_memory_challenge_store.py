"""Process-local challenge store for single-instance deployments."""

from __future__ import annotations

import asyncio
from datetime import datetime

from identity_vault.application.ports.challenge_store_port import ChallengeStorePort
from identity_vault.domain.mfa.challenge import MfaChallenge


class InMemoryChallengeStore(ChallengeStorePort):
    """Dictionary-backed challenge store guarded by one asyncio lock.

    Entries do not survive a restart; pending logins must be retried.
    """

    def __init__(self) -> None:
        self._entries: dict[str, MfaChallenge] = {}
        self._lock = asyncio.Lock()

    async def get(self, *, user_key: str) -> MfaChallenge | None:
        async with self._lock:
            return self._entries.get(user_key)

    async def put(self, *, user_key: str, challenge: MfaChallenge) -> None:
        async with self._lock:
            self._entries[user_key] = challenge

    async def compare_and_set(
        self,
        *,
        user_key: str,
        expected: MfaChallenge,
        new: MfaChallenge | None,
    ) -> bool:
        async with self._lock:
            if self._entries.get(user_key) != expected:
                return False
            if new is None:
                del self._entries[user_key]
            else:
                self._entries[user_key] = new
            return True

    async def purge_expired(self, *, now: datetime) -> int:
        async with self._lock:
            expired_keys = [
                key for key, challenge in self._entries.items() if challenge.is_expired(now=now)
            ]
            for key in expired_keys:
                del self._entries[key]
            return len(expired_keys)

    def __len__(self) -> int:
        return len(self._entries)
