"""Application service for admin role-assignment operations."""

from __future__ import annotations

import logging
from uuid import UUID

from identity_vault.application.ports.user_repository_port import UserRecord, UserRepositoryPort
from identity_vault.domain.auth.roles import parse_role_name
from identity_vault.domain.errors import (
    ConfigurationError,
    ForbiddenError,
    InputError,
    NotFoundError,
)

logger = logging.getLogger(__name__)


class UserNotFoundError(NotFoundError):
    """Raised when a target user cannot be found for one role change."""

    def __init__(self, *, user_id: UUID) -> None:
        super().__init__(f"user not found: {user_id}")
        self.user_id = user_id


class SelfRoleChangeError(ForbiddenError):
    """Raised when an admin attempts to change their own role."""

    def __init__(self) -> None:
        super().__init__("You cannot change your own role")


class RoleAssignmentService:
    """Change the role of one user; callers enforce `roles:assign` beforehand."""

    def __init__(self, *, users: UserRepositoryPort) -> None:
        self._users = users

    async def assign_role(
        self,
        *,
        actor_user_id: UUID | None,
        target_user_id: UUID,
        role_name: str | None,
    ) -> UserRecord:
        """Assign the named role to the target user and return the refreshed row."""

        role = parse_role_name(role_name)
        if role is None:
            raise InputError("Invalid role name")
        if actor_user_id is not None and actor_user_id == target_user_id:
            raise SelfRoleChangeError()

        role_id = await self._users.get_role_id_by_name(role=role)
        if role_id is None:
            raise ConfigurationError(f"role is not provisioned: {role.value}")

        updated = await self._users.set_role(user_id=target_user_id, role_id=role_id)
        if updated is None:
            raise UserNotFoundError(user_id=target_user_id)

        logger.info(
            "role_assigned actor_user_id=%s target_user_id=%s role=%s",
            actor_user_id,
            target_user_id,
            role.value,
        )
        return updated
