"""HMAC-SHA256 lookup token adapter."""

from __future__ import annotations

import base64
import hashlib
import hmac

from identity_vault.application.ports.lookup_indexer_port import LookupIndexerPort
from identity_vault.domain.auth.credentials import normalize_lookup_value
from identity_vault.infrastructure.security.key_material import decode_key_b64


class HmacLookupIndexer(LookupIndexerPort):
    """Derive 44-character base64 tokens from trimmed, lowercased values."""

    def __init__(self, *, key_b64: str | None, setting_name: str = "INDEX_KEY_B64") -> None:
        self._key_b64 = key_b64
        self._setting_name = setting_name

    def index(self, value: str) -> str:
        normalized = normalize_lookup_value(value=value)
        key = decode_key_b64(self._key_b64, setting_name=self._setting_name)
        digest = hmac.new(key, normalized.encode("utf-8"), hashlib.sha256).digest()
        return base64.b64encode(digest).decode("ascii")
