"""Port for authenticated encryption of sensitive field values."""

from __future__ import annotations

from typing import Protocol

from identity_vault.domain.crypto.bundle import EncryptedBundle


class FieldCipherPort(Protocol):
    """Seal/open contract for protected fields such as email and username."""

    def seal(self, plaintext: str) -> EncryptedBundle:
        """Encrypt plaintext under a fresh nonce."""

    def open(self, bundle: EncryptedBundle) -> str:
        """Decrypt and authenticate one bundle."""
