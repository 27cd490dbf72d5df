"""Authorization guards composed from the static permission policy."""

from __future__ import annotations

from identity_vault.domain.auth.permissions import (
    Permission,
    TableScope,
    has_permission,
    table_view_permission,
)
from identity_vault.domain.auth.roles import Role, normalize_role
from identity_vault.domain.errors import ForbiddenError


class AccessGuardService:
    """Raise `ForbiddenError` when a resolved role may not continue."""

    def require_permission(self, *, role: Role | str | None, permission: str | None) -> None:
        """Require `role` to hold `permission`; unknown permissions always deny."""

        if not has_permission(normalize_role(role), permission):
            raise ForbiddenError("Forbidden: permission denied")

    def require_table_view(
        self,
        *,
        role: Role | str | None,
        table_name: str,
        scope: str = TableScope.PUBLIC,
    ) -> Permission:
        """Require view access to one table scope and return the permission checked."""

        permission = table_view_permission(table_name, scope)
        self.require_permission(role=role, permission=permission)
        assert permission is not None
        return permission

    def require_role_assignment(self, *, role: Role | str | None) -> None:
        """Require the caller to be allowed to assign or change roles."""

        if not has_permission(normalize_role(role), Permission.ASSIGN_ROLES):
            raise ForbiddenError("Only admin can assign or change roles.")

    def require_decrypt_access(self, *, role: Role | str | None) -> None:
        """Require a role allowed to see decrypted protected payloads."""

        if normalize_role(role) not in {Role.ADMIN, Role.RESEARCHER}:
            raise ForbiddenError("Forbidden: no decrypt permission")
