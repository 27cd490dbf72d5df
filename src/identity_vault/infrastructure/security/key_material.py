"""Decoding and validation of base64 key material from configuration."""

from __future__ import annotations

import base64
import binascii

from identity_vault.domain.errors import ConfigurationError

KEY_LENGTH_BYTES = 32


def decode_key_b64(value: str | None, *, setting_name: str) -> bytes:
    """Decode one base64 key and require exactly 256 bits."""

    if value is None or not value.strip():
        raise ConfigurationError(f"missing {setting_name}")
    try:
        key = base64.b64decode(value.strip(), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ConfigurationError(f"{setting_name} is not valid base64") from exc
    if len(key) != KEY_LENGTH_BYTES:
        raise ConfigurationError(f"{setting_name} must decode to {KEY_LENGTH_BYTES} bytes")
    return key
