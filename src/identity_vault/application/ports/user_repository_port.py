"""Port for user persistence operations used by identity services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
from uuid import UUID

from identity_vault.domain.auth.roles import Role
from identity_vault.domain.errors import ConflictError


class DuplicateUserError(ConflictError):
    """Raised when a unique lookup token (email or username) already exists."""

    def __init__(self, *, field: str) -> None:
        super().__init__(f"an account with this {field} already exists")
        self.field = field


@dataclass(frozen=True)
class UserCreateInput:
    """Input payload for inserting one user row; protected fields arrive sealed."""

    role_id: int | None
    email_index: str
    email_bundle_json: str
    password_hash: str
    username_index: str | None = None
    username_bundle_json: str | None = None


@dataclass(frozen=True)
class UserRecord:
    """User persistence model."""

    user_id: UUID
    role_id: int | None
    role_name: Role | None
    email_index: str
    email_bundle_json: str | None
    username_index: str | None
    username_bundle_json: str | None
    password_hash: str
    created_at: datetime
    updated_at: datetime


class UserRepositoryPort(Protocol):
    """User repository contract."""

    async def get_by_id(self, *, user_id: UUID) -> UserRecord | None:
        """Return user by id."""

    async def get_by_email_index(self, *, email_index: str) -> UserRecord | None:
        """Return user by email lookup token."""

    async def create_user(self, payload: UserCreateInput) -> UserRecord:
        """Insert one user; raise DuplicateUserError on token uniqueness violation."""

    async def set_role(self, *, user_id: UUID, role_id: int) -> UserRecord | None:
        """Update one user's role and return the refreshed row, or None when missing."""

    async def get_role_id_by_name(self, *, role: Role) -> int | None:
        """Return the persisted role id for one role name."""

    async def count_users(self) -> int:
        """Return total persisted users."""
