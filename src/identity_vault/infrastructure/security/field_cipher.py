"""AES-256-GCM field cipher adapter."""

from __future__ import annotations

import logging
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from identity_vault.application.ports.field_cipher_port import FieldCipherPort
from identity_vault.domain.crypto.bundle import CURRENT_BUNDLE_VERSION, EncryptedBundle
from identity_vault.domain.errors import InputError, IntegrityError
from identity_vault.infrastructure.security.key_material import decode_key_b64

NONCE_LENGTH_BYTES = 12
TAG_LENGTH_BYTES = 16

logger = logging.getLogger(__name__)


class AesGcmFieldCipher(FieldCipherPort):
    """Seal and open protected fields with AES-256-GCM.

    The key is decoded on every call so a missing or malformed key fails the
    affected operation with `ConfigurationError` instead of preventing startup.
    """

    def __init__(self, *, key_b64: str | None, setting_name: str = "DATA_KEY_B64") -> None:
        self._key_b64 = key_b64
        self._setting_name = setting_name

    def seal(self, plaintext: str) -> EncryptedBundle:
        if not plaintext:
            raise InputError("no text provided to encrypt")
        aesgcm = AESGCM(self._load_key())

        nonce = os.urandom(NONCE_LENGTH_BYTES)
        sealed = aesgcm.encrypt(nonce, plaintext.encode("utf-8"), None)
        return EncryptedBundle(
            iv=nonce,
            ct=sealed[:-TAG_LENGTH_BYTES],
            tag=sealed[-TAG_LENGTH_BYTES:],
            version=CURRENT_BUNDLE_VERSION,
        )

    def open(self, bundle: EncryptedBundle) -> str:
        if bundle is None or not bundle.iv or not bundle.ct or not bundle.tag:
            raise InputError("invalid encrypted bundle")
        if bundle.version != CURRENT_BUNDLE_VERSION:
            raise InputError(f"unsupported encrypted bundle version: {bundle.version}")
        aesgcm = AESGCM(self._load_key())

        try:
            plaintext = aesgcm.decrypt(bundle.iv, bundle.ct + bundle.tag, None)
        except (InvalidTag, ValueError) as exc:
            logger.error("security_event=bundle_authentication_failed")
            raise IntegrityError("encrypted bundle failed authentication") from exc
        return plaintext.decode("utf-8")

    def _load_key(self) -> bytes:
        return decode_key_b64(self._key_b64, setting_name=self._setting_name)
