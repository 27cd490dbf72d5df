"""Static permission policy mapping each capability to its allowed roles."""

from __future__ import annotations

from enum import StrEnum
from typing import Final

from identity_vault.domain.auth.roles import Role


class Permission(StrEnum):
    """Named capabilities checked by the access policy."""

    VIEW_ROLES = "tables:roles:view"
    VIEW_USERS = "tables:users:view"
    VIEW_SPECIES_FULL = "tables:species:view_full"
    VIEW_SPECIES_PUBLIC = "tables:species:view_public"
    VIEW_SENSOR_DEVICES = "tables:sensor_devices:view"
    VIEW_SENSOR_READINGS = "tables:sensor_readings:view"
    VIEW_PLANT_OBSERVATIONS_FULL = "tables:plant_observations:view_full"
    VIEW_PLANT_OBSERVATIONS_PUBLIC = "tables:plant_observations:view_public"
    VIEW_AI_RESULTS = "tables:ai_results:view"
    VIEW_ALERTS = "tables:alerts:view"
    ASSIGN_ROLES = "roles:assign"


class TableScope(StrEnum):
    """Visibility scope requested for a table view."""

    PUBLIC = "public"
    FULL = "full"


_STAFF: Final[frozenset[Role]] = frozenset({Role.ADMIN, Role.RESEARCHER})
_EVERYONE: Final[frozenset[Role]] = frozenset(Role)

POLICY: Final[dict[str, frozenset[Role]]] = {
    Permission.VIEW_ROLES: frozenset({Role.ADMIN}),
    Permission.VIEW_USERS: frozenset({Role.ADMIN}),
    Permission.VIEW_SPECIES_FULL: _STAFF,
    Permission.VIEW_SENSOR_DEVICES: _STAFF,
    Permission.VIEW_SENSOR_READINGS: _STAFF,
    Permission.VIEW_PLANT_OBSERVATIONS_FULL: _STAFF,
    Permission.VIEW_AI_RESULTS: _STAFF,
    Permission.VIEW_ALERTS: _STAFF,
    Permission.ASSIGN_ROLES: frozenset({Role.ADMIN}),
    Permission.VIEW_SPECIES_PUBLIC: _EVERYONE,
    Permission.VIEW_PLANT_OBSERVATIONS_PUBLIC: _EVERYONE,
}

_TABLE_VIEW_PERMISSIONS: Final[dict[tuple[str, TableScope], Permission]] = {
    ("roles", TableScope.FULL): Permission.VIEW_ROLES,
    ("users", TableScope.FULL): Permission.VIEW_USERS,
    ("species", TableScope.FULL): Permission.VIEW_SPECIES_FULL,
    ("species", TableScope.PUBLIC): Permission.VIEW_SPECIES_PUBLIC,
    ("sensor_devices", TableScope.FULL): Permission.VIEW_SENSOR_DEVICES,
    ("sensor_readings", TableScope.FULL): Permission.VIEW_SENSOR_READINGS,
    ("plant_observations", TableScope.FULL): Permission.VIEW_PLANT_OBSERVATIONS_FULL,
    ("plant_observations", TableScope.PUBLIC): Permission.VIEW_PLANT_OBSERVATIONS_PUBLIC,
    ("ai_results", TableScope.FULL): Permission.VIEW_AI_RESULTS,
    ("alerts", TableScope.FULL): Permission.VIEW_ALERTS,
}


def allowed_roles(permission: str) -> frozenset[Role]:
    """Return roles allowed to exercise `permission`; unknown permissions allow nobody."""

    return POLICY.get(permission, frozenset())


def has_permission(role: Role | str | None, permission: str | None) -> bool:
    """Return whether `role` may exercise `permission`."""

    if role is None or permission is None:
        return False
    return role in allowed_roles(permission)


def table_view_permission(table_name: str, scope: str = TableScope.PUBLIC) -> Permission | None:
    """Resolve the permission guarding one table view, or None for unmapped pairs."""

    table = table_name.strip().lower()
    try:
        resolved_scope = TableScope(scope.strip().lower())
    except ValueError:
        return None
    return _TABLE_VIEW_PERMISSIONS.get((table, resolved_scope))
