"""Port for outbound mail delivery."""

from __future__ import annotations

from typing import Protocol


class MailSenderPort(Protocol):
    """Mail delivery contract; any non-success is reported as False."""

    async def deliver(self, *, to_address: str, subject: str, body: str) -> bool:
        """Send one plain-text message and report whether delivery succeeded."""
