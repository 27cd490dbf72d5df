"""Versioned value type for authenticated-encryption output stored at rest."""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any

from identity_vault.domain.errors import InputError

CURRENT_BUNDLE_VERSION = 1


@dataclass(frozen=True)
class EncryptedBundle:
    """Nonce, ciphertext and authentication tag produced by one seal operation."""

    iv: bytes
    ct: bytes
    tag: bytes
    version: int = CURRENT_BUNDLE_VERSION

    def to_json(self) -> str:
        """Serialize bundle into the JSON text stored in `*_bundle_json` columns."""

        return json.dumps(
            {
                "v": self.version,
                "iv": _b64encode(self.iv),
                "ct": _b64encode(self.ct),
                "tag": _b64encode(self.tag),
            },
            separators=(",", ":"),
        )

    @classmethod
    def from_json(cls, raw: str) -> EncryptedBundle:
        """Parse stored JSON text; rows written before versioning default to version 1."""

        try:
            payload = json.loads(raw)
        except (TypeError, ValueError) as exc:
            raise InputError("encrypted bundle is not valid JSON") from exc
        if not isinstance(payload, dict):
            raise InputError("encrypted bundle must be a JSON object")
        return cls.from_mapping(payload)

    @classmethod
    def from_mapping(cls, payload: dict[str, Any]) -> EncryptedBundle:
        """Build bundle from a decoded mapping with base64 `iv`, `ct` and `tag` fields."""

        missing = [name for name in ("iv", "ct", "tag") if not payload.get(name)]
        if missing:
            raise InputError(f"encrypted bundle missing fields: {', '.join(missing)}")

        version = payload.get("v", CURRENT_BUNDLE_VERSION)
        if not isinstance(version, int) or isinstance(version, bool):
            raise InputError("encrypted bundle version must be an integer")

        return cls(
            iv=_b64decode(payload["iv"], field="iv"),
            ct=_b64decode(payload["ct"], field="ct"),
            tag=_b64decode(payload["tag"], field="tag"),
            version=version,
        )


def _b64encode(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")


def _b64decode(value: object, *, field: str) -> bytes:
    if not isinstance(value, str):
        raise InputError(f"encrypted bundle field {field} must be base64 text")
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InputError(f"encrypted bundle field {field} is not valid base64") from exc
