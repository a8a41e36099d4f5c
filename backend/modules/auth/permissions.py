"""
Role capabilities.

Screens ask "can the current role do X" instead of comparing role strings
themselves. The API enforces the same table server-side through the
require_capability dependency; hiding a button is never the only check.
"""

from enum import Enum

from .exceptions import InsufficientPermissionsError
from .models import StaffRole


class Capability(str, Enum):
    """Actions gated by role."""

    CUSTOMERS_READ = "customers:read"
    CUSTOMERS_WRITE = "customers:write"
    CUSTOMERS_DISABLE = "customers:disable"
    CUSTOMERS_EXPORT = "customers:export"

    VEHICLES_READ = "vehicles:read"
    VEHICLES_WRITE = "vehicles:write"
    VEHICLES_DISABLE = "vehicles:disable"
    VEHICLES_EXPORT = "vehicles:export"

    DIAGNOSTICS_READ = "diagnostics:read"
    DIAGNOSTICS_CREATE = "diagnostics:create"
    DIAGNOSTICS_EDIT = "diagnostics:edit"
    DIAGNOSTICS_APPROVE = "diagnostics:approve"

    REPAIRS_READ = "repairs:read"
    REPAIRS_WRITE = "repairs:write"
    REPAIRS_UPDATE_PROGRESS = "repairs:update_progress"


_ALL_ROLES = frozenset(StaffRole)
_MANAGER = frozenset({StaffRole.MANAGER})
_MANAGER_FRONT_DESK = frozenset({StaffRole.MANAGER, StaffRole.FRONT_DESK})
_MANAGER_TECHNICIAN = frozenset({StaffRole.MANAGER, StaffRole.TECHNICIAN})

CAPABILITY_ROLES: dict[Capability, frozenset[StaffRole]] = {
    Capability.CUSTOMERS_READ: _ALL_ROLES,
    Capability.CUSTOMERS_WRITE: _MANAGER_FRONT_DESK,
    Capability.CUSTOMERS_DISABLE: _MANAGER,
    Capability.CUSTOMERS_EXPORT: _MANAGER,
    Capability.VEHICLES_READ: _ALL_ROLES,
    Capability.VEHICLES_WRITE: _MANAGER_FRONT_DESK,
    Capability.VEHICLES_DISABLE: _MANAGER,
    Capability.VEHICLES_EXPORT: _MANAGER,
    Capability.DIAGNOSTICS_READ: _ALL_ROLES,
    Capability.DIAGNOSTICS_CREATE: _ALL_ROLES,
    Capability.DIAGNOSTICS_EDIT: _MANAGER_TECHNICIAN,
    Capability.DIAGNOSTICS_APPROVE: _MANAGER_FRONT_DESK,
    Capability.REPAIRS_READ: _ALL_ROLES,
    Capability.REPAIRS_WRITE: _MANAGER_FRONT_DESK,
    Capability.REPAIRS_UPDATE_PROGRESS: _MANAGER_TECHNICIAN,
}


def has_capability(role: StaffRole, capability: Capability) -> bool:
    return role in CAPABILITY_ROLES.get(capability, frozenset())


def capabilities_for(role: StaffRole) -> list[Capability]:
    """All capabilities of a role, in declaration order."""
    return [capability for capability in Capability if has_capability(role, capability)]


def require(role: StaffRole, capability: Capability) -> None:
    """
    Raise if the role lacks the capability.

    Raises:
        InsufficientPermissionsError: If the role is not allowed
    """
    if not has_capability(role, capability):
        raise InsufficientPermissionsError(capability.value, role.value)
