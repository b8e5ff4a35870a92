"""
Role-permission registry and role hierarchy.

Both tables are module-level constants built once at import time and never
mutated, so lookups are safe from any number of concurrent requests.
"""
import enum
from types import MappingProxyType
from typing import FrozenSet, Mapping, Optional, Union

from app.features.permissions.exceptions import InvalidPermissionError, InvalidRoleError


class Role(str, enum.Enum):
    """Closed set of organization roles."""
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    VIEWER = "VIEWER"


class PermissionScope(str, enum.Enum):
    """Ownership qualifier carried by scoped permissions."""
    OWN = "own"
    ALL = "all"


class Permission(str, enum.Enum):
    """Permission tokens written as ``resource:action`` or ``resource:action:scope``."""
    # Task permissions
    TASK_CREATE = "task:create"
    TASK_READ_ALL = "task:read:all"
    TASK_READ_OWN = "task:read:own"
    TASK_UPDATE_ALL = "task:update:all"
    TASK_UPDATE_OWN = "task:update:own"
    TASK_DELETE_ALL = "task:delete:all"
    TASK_DELETE_OWN = "task:delete:own"

    # User permissions
    USER_CREATE = "user:create"
    USER_READ = "user:read"
    USER_UPDATE = "user:update"
    USER_DELETE = "user:delete"

    # Organization permissions
    ORG_MANAGE = "org:manage"
    ORG_READ = "org:read"

    # Audit log permissions
    AUDIT_READ = "audit:read"

    @property
    def resource(self) -> str:
        return self.value.split(":")[0]

    @property
    def action(self) -> str:
        return self.value.split(":")[1]

    @property
    def scope(self) -> Optional[PermissionScope]:
        parts = self.value.split(":")
        return PermissionScope(parts[2]) if len(parts) == 3 else None

    def with_scope(self, scope: PermissionScope) -> "Permission":
        """Return the sibling permission with the given scope, e.g. task:read:own -> task:read:all."""
        if self.scope is None:
            raise InvalidPermissionError(f"{self.value}:{scope.value}")
        return parse_permission(f"{self.resource}:{self.action}:{scope.value}")


RoleLike = Union[Role, str]
PermissionLike = Union[Permission, str]


def parse_role(role: RoleLike) -> Role:
    """Coerce a role or role name to Role, raising InvalidRoleError for anything else."""
    if isinstance(role, Role):
        return role
    try:
        return Role(role)
    except ValueError:
        raise InvalidRoleError(role) from None


def parse_permission(permission: PermissionLike) -> Permission:
    """Coerce a permission token to Permission, raising InvalidPermissionError for anything else."""
    if isinstance(permission, Permission):
        return permission
    try:
        return Permission(permission)
    except ValueError:
        raise InvalidPermissionError(permission) from None


# ============================================================================
# Role → Permission table
# ============================================================================

# ADMIN intentionally lacks USER_DELETE and ORG_MANAGE; this is not a strict
# superset hierarchy and must not be normalized to one.
ROLE_PERMISSIONS: Mapping[Role, FrozenSet[Permission]] = MappingProxyType({
    Role.OWNER: frozenset({
        Permission.TASK_CREATE,
        Permission.TASK_READ_ALL,
        Permission.TASK_READ_OWN,
        Permission.TASK_UPDATE_ALL,
        Permission.TASK_UPDATE_OWN,
        Permission.TASK_DELETE_ALL,
        Permission.TASK_DELETE_OWN,
        Permission.USER_CREATE,
        Permission.USER_READ,
        Permission.USER_UPDATE,
        Permission.USER_DELETE,
        Permission.ORG_MANAGE,
        Permission.ORG_READ,
        Permission.AUDIT_READ,
    }),
    Role.ADMIN: frozenset({
        Permission.TASK_CREATE,
        Permission.TASK_READ_ALL,
        Permission.TASK_READ_OWN,
        Permission.TASK_UPDATE_ALL,
        Permission.TASK_UPDATE_OWN,
        Permission.TASK_DELETE_ALL,
        Permission.TASK_DELETE_OWN,
        Permission.USER_CREATE,
        Permission.USER_READ,
        Permission.USER_UPDATE,
        Permission.ORG_READ,
        Permission.AUDIT_READ,
    }),
    Role.VIEWER: frozenset({
        Permission.TASK_CREATE,
        Permission.TASK_READ_OWN,
        Permission.TASK_UPDATE_OWN,
        Permission.TASK_DELETE_OWN,
        Permission.ORG_READ,
    }),
})


# ============================================================================
# Role hierarchy
# ============================================================================

ROLE_LEVELS: Mapping[Role, int] = MappingProxyType({
    Role.OWNER: 3,
    Role.ADMIN: 2,
    Role.VIEWER: 1,
})


def permissions_for(role: RoleLike) -> FrozenSet[Permission]:
    """
    Get the complete permission set granted to a role.

    Raises:
        InvalidRoleError: role is not OWNER, ADMIN or VIEWER
    """
    return ROLE_PERMISSIONS[parse_role(role)]


def has_permission(role: RoleLike, permission: PermissionLike) -> bool:
    """Check whether a role holds a permission."""
    return parse_permission(permission) in permissions_for(role)


def level_of(role: RoleLike) -> int:
    """Hierarchy level: OWNER=3, ADMIN=2, VIEWER=1."""
    return ROLE_LEVELS[parse_role(role)]


def can_manage(manager_role: RoleLike, target_role: RoleLike) -> bool:
    """
    Check if manager_role can manage a user holding target_role.

    Strictly greater level is required, so no role manages an equal role or itself:
    OWNER manages ADMIN and VIEWER, ADMIN manages VIEWER, VIEWER manages no one.
    """
    return level_of(manager_role) > level_of(target_role)
