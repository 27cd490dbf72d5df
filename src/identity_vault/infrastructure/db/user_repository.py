"""SQLAlchemy adapter for user persistence."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import cast
from uuid import UUID, uuid4

import sqlalchemy as sa
from sqlalchemy import exc as sa_exc
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from identity_vault.application.ports.user_repository_port import (
    DuplicateUserError,
    UserCreateInput,
    UserRecord,
    UserRepositoryPort,
)
from identity_vault.domain.auth.roles import Role, parse_role_name
from identity_vault.infrastructure.db.metadata import roles, users


def _duplicate_field(error: sa_exc.IntegrityError) -> str | None:
    message = str(error.orig).lower()
    if "email_index" in message:
        return "email"
    if "username_index" in message:
        return "username"
    return None


def _user_select() -> sa.Select[tuple[object, ...]]:
    return sa.select(
        users.c.user_id,
        users.c.role_id,
        roles.c.role_name,
        users.c.email_index,
        users.c.email_bundle_json,
        users.c.username_index,
        users.c.username_bundle_json,
        users.c.password_hash,
        users.c.created_at,
        users.c.updated_at,
    ).select_from(users.outerjoin(roles, roles.c.role_id == users.c.role_id))


class SqlAlchemyUserRepository(UserRepositoryPort):
    """User repository backed by SQLAlchemy async sessions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_by_id(self, *, user_id: UUID) -> UserRecord | None:
        """Return user by id."""

        statement = _user_select().where(users.c.user_id == user_id).limit(1)
        return await self._fetch_one(statement)

    async def get_by_email_index(self, *, email_index: str) -> UserRecord | None:
        """Return user by email lookup token."""

        statement = _user_select().where(users.c.email_index == email_index).limit(1)
        return await self._fetch_one(statement)

    async def create_user(self, payload: UserCreateInput) -> UserRecord:
        """Insert one user; raise DuplicateUserError on token uniqueness violation."""

        user_id = uuid4()
        statement = sa.insert(users).values(
            user_id=user_id,
            role_id=payload.role_id,
            email_index=payload.email_index,
            email_bundle_json=payload.email_bundle_json,
            username_index=payload.username_index,
            username_bundle_json=payload.username_bundle_json,
            password_hash=payload.password_hash,
        )

        async with self._session_factory() as session:
            try:
                await session.execute(statement)
                await session.commit()
            except sa_exc.IntegrityError as error:
                await session.rollback()
                field = _duplicate_field(error)
                if field is not None:
                    raise DuplicateUserError(field=field) from error
                raise

        created = await self.get_by_id(user_id=user_id)
        if created is None:  # pragma: no cover - row was just committed.
            raise RuntimeError("created user row could not be reloaded")
        return created

    async def set_role(self, *, user_id: UUID, role_id: int) -> UserRecord | None:
        """Update one user's role and return the refreshed row, or None when missing."""

        statement = (
            sa.update(users)
            .where(users.c.user_id == user_id)
            .values(role_id=role_id, updated_at=datetime.now(tz=UTC))
        )
        async with self._session_factory() as session:
            result = await session.execute(statement)
            await session.commit()

        if result.rowcount == 0:
            return None
        return await self.get_by_id(user_id=user_id)

    async def get_role_id_by_name(self, *, role: Role) -> int | None:
        """Return the persisted role id for one role name."""

        statement = (
            sa.select(roles.c.role_id)
            .where(sa.func.lower(roles.c.role_name) == role.value)
            .limit(1)
        )
        async with self._session_factory() as session:
            result = await session.execute(statement)

        role_id = result.scalar_one_or_none()
        return int(role_id) if role_id is not None else None

    async def count_users(self) -> int:
        """Return total persisted users."""

        async with self._session_factory() as session:
            result = await session.execute(sa.select(sa.func.count()).select_from(users))
        return int(result.scalar_one())

    async def _fetch_one(self, statement: sa.Select[tuple[object, ...]]) -> UserRecord | None:
        async with self._session_factory() as session:
            result = await session.execute(statement)

        row = result.mappings().first()
        if row is None:
            return None
        return _to_user_record(row)


def _to_user_record(row: sa.RowMapping) -> UserRecord:
    raw_user_id = row["user_id"]
    user_id = raw_user_id if isinstance(raw_user_id, UUID) else UUID(str(raw_user_id))
    role_id = row["role_id"]
    return UserRecord(
        user_id=user_id,
        role_id=int(role_id) if role_id is not None else None,
        role_name=parse_role_name(cast(str | None, row["role_name"])),
        email_index=cast(str, row["email_index"]),
        email_bundle_json=cast(str | None, row["email_bundle_json"]),
        username_index=cast(str | None, row["username_index"]),
        username_bundle_json=cast(str | None, row["username_bundle_json"]),
        password_hash=cast(str, row["password_hash"]),
        created_at=cast(datetime, row["created_at"]),
        updated_at=cast(datetime, row["updated_at"]),
    )
