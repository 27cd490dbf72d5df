"""SMTP mail delivery adapter backed by aiosmtplib."""

from __future__ import annotations

import asyncio
import logging
from email.message import EmailMessage

import aiosmtplib

from identity_vault.application.ports.mail_sender_port import MailSenderPort

logger = logging.getLogger(__name__)


class SmtpMailSender(MailSenderPort):
    """Deliver plain-text messages over SMTP with a bounded timeout."""

    def __init__(
        self,
        *,
        host: str,
        port: int,
        sender_address: str | None,
        password: str | None,
        use_tls: bool = True,
        timeout_seconds: float = 10.0,
    ) -> None:
        self._host = host
        self._port = port
        self._sender_address = sender_address
        self._password = password
        self._use_tls = use_tls
        self._timeout_seconds = timeout_seconds

    async def deliver(self, *, to_address: str, subject: str, body: str) -> bool:
        if not self._sender_address:
            logger.error("mail_delivery_unconfigured missing=FROM_EMAIL")
            return False

        message = EmailMessage()
        message["From"] = self._sender_address
        message["To"] = to_address
        message["Subject"] = subject
        message.set_content(body)

        try:
            await aiosmtplib.send(
                message,
                hostname=self._host,
                port=self._port,
                username=self._sender_address if self._password else None,
                password=self._password or None,
                start_tls=self._use_tls,
                timeout=self._timeout_seconds,
            )
        except (aiosmtplib.SMTPException, OSError, asyncio.TimeoutError) as exc:
            logger.warning(
                "mail_delivery_failed host=%s port=%s error=%s",
                self._host,
                self._port,
                type(exc).__name__,
            )
            return False

        return True
