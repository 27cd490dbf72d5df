"""Bcrypt password hasher adapter."""

from __future__ import annotations

import bcrypt

from identity_vault.application.ports.password_hasher_port import PasswordHasherPort
from identity_vault.domain.errors import InputError

DEFAULT_BCRYPT_ROUNDS = 12


class BcryptPasswordHasher(PasswordHasherPort):
    """Password hashing adapter using bcrypt with a configurable cost factor."""

    def __init__(self, *, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> None:
        self._rounds = rounds

    def hash_password(self, password: str) -> str:
        if not password:
            raise InputError("password is required")
        encoded = password.encode("utf-8")
        try:
            hashed = bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self._rounds))
        except ValueError as exc:
            # bcrypt rejects inputs longer than 72 bytes.
            raise InputError("password is too long") from exc
        return hashed.decode("utf-8")

    def verify_password(self, *, password: str | None, password_hash: str | None) -> bool:
        if not password or not password_hash:
            return False
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError:
            return False
