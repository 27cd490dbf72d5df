"""Periodic purge loop reclaiming abandoned MFA challenges."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from identity_vault.application.services.mfa_service import MfaChallengeManager

SleepCallable = Callable[[float], Awaitable[None]]
logger = logging.getLogger(__name__)


class ChallengeSweeper:
    """Purge expired challenges on a fixed interval."""

    def __init__(
        self,
        *,
        mfa: MfaChallengeManager,
        interval_seconds: float,
        sleep: SleepCallable = asyncio.sleep,
    ) -> None:
        self._mfa = mfa
        self._interval_seconds = interval_seconds
        self._sleep = sleep

    async def run_once(self) -> int:
        """Purge once, then wait one interval."""

        removed = await self._mfa.purge_expired()
        await self._sleep(self._interval_seconds)
        return removed

    async def run_until_stopped(self, stop_event: asyncio.Event) -> None:
        """Continuously purge until stop_event is set."""

        logger.info("challenge_sweeper_started interval_seconds=%s", self._interval_seconds)
        while not stop_event.is_set():
            await self.run_once()
        logger.info("challenge_sweeper_stopped")
