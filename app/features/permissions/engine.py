"""
Authorization decision engine.

Combines the role registry, organization scoping and resource ownership into a
single allow/deny decision. Everything here is pure and synchronous: callers
fetch the resource first, reduce it to a ResourceDescriptor, and pass it in.

Gates evaluated by authorize(), short-circuiting on the first failure:
1. Permission possession - the principal's role must hold the permission.
2. Organization scope - the resource must belong to the principal's organization.
   No role bypasses this gate.
3. Ownership resolution - for own/all scoped permissions, a role holding the
   ``:all`` variant passes; otherwise the principal must own the resource
   (or, for reads, be assigned to it).

Denials are returned as Decision values carrying a DenialReason. The reason is
for logs and audit entries only and must not be echoed to clients.
"""
import enum
from typing import Any, Callable, Iterable, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict

from app.features.permissions.registry import (
    Permission,
    PermissionLike,
    PermissionScope,
    Role,
    RoleLike,
    can_manage,
    level_of,
    parse_permission,
    permissions_for,
)

T = TypeVar("T")


class DenialReason(str, enum.Enum):
    """Internal reason attached to a denied decision."""
    MISSING_PERMISSION = "MissingPermission"
    CROSS_ORGANIZATION_ACCESS = "CrossOrganizationAccess"
    NOT_OWNER = "NotOwner"
    SELF_TARGET_FORBIDDEN = "SelfTargetForbidden"
    INSUFFICIENT_HIERARCHY = "InsufficientHierarchy"


class ManagementAction(str, enum.Enum):
    """Operations on another user's role or membership."""
    GRANT_ROLE = "grant_role"
    CHANGE_ROLE = "change_role"
    REMOVE_MEMBER = "remove_member"
    DELETE_USER = "delete_user"


class Principal(BaseModel):
    """Authenticated actor, rebuilt per request from a verified token."""
    model_config = ConfigDict(frozen=True)

    id: str
    role: Role
    organization_id: Optional[str] = None


class ResourceDescriptor(BaseModel):
    """Ownership and organization shape of a domain object."""
    model_config = ConfigDict(frozen=True, from_attributes=True)

    organization_id: Optional[str]
    owner_id: Optional[str] = None
    assigned_to_id: Optional[str] = None


class Decision(BaseModel):
    """Result of an authorization check."""
    model_config = ConfigDict(frozen=True)

    allow: bool
    reason: Optional[DenialReason] = None

    @classmethod
    def allowed(cls) -> "Decision":
        return _ALLOW

    @classmethod
    def denied(cls, reason: DenialReason) -> "Decision":
        return cls(allow=False, reason=reason)

    def __bool__(self) -> bool:
        return self.allow


_ALLOW = Decision(allow=True)


def as_resource_descriptor(item: Any) -> ResourceDescriptor:
    """
    Reduce a domain object to a ResourceDescriptor.

    Accepts a ResourceDescriptor as-is, otherwise reads organization_id, owner_id
    and assigned_to_id attributes (ORM rows, schemas).
    """
    if isinstance(item, ResourceDescriptor):
        return item
    return ResourceDescriptor.model_validate(item, from_attributes=True)


# ============================================================================
# Gates
# ============================================================================

def _check_possession(principal: Principal, permission: Permission) -> Optional[DenialReason]:
    if permission not in permissions_for(principal.role):
        return DenialReason.MISSING_PERMISSION
    return None


def _check_organization(principal: Principal, resource: ResourceDescriptor) -> Optional[DenialReason]:
    # A resource outside any organization is never in scope.
    if resource.organization_id is None or resource.organization_id != principal.organization_id:
        return DenialReason.CROSS_ORGANIZATION_ACCESS
    return None


def _check_ownership(
    principal: Principal,
    permission: Permission,
    resource: ResourceDescriptor,
) -> Optional[DenialReason]:
    if permission.scope is None:
        return None

    if permission.with_scope(PermissionScope.ALL) in permissions_for(principal.role):
        return None

    if resource.owner_id is not None and resource.owner_id == principal.id:
        return None
    if (
        permission.action == "read"
        and resource.assigned_to_id is not None
        and resource.assigned_to_id == principal.id
    ):
        return None
    return DenialReason.NOT_OWNER


# ============================================================================
# Public API
# ============================================================================

def authorize(
    principal: Principal,
    permission: PermissionLike,
    resource: Optional[ResourceDescriptor] = None,
) -> Decision:
    """
    Decide whether principal may exercise permission, optionally on a resource.

    Without a resource only permission possession is checked, which is what
    creation-type actions need.

    Raises:
        InvalidPermissionError: permission is not in the fixed permission set
        InvalidRoleError: principal carries an unknown role
    """
    permission = parse_permission(permission)

    reason = _check_possession(principal, permission)
    if reason is None and resource is not None:
        reason = _check_organization(principal, resource) or _check_ownership(principal, permission, resource)

    if reason is not None:
        return Decision.denied(reason)
    return Decision.allowed()


def filter_visible(
    principal: Principal,
    resources: Iterable[T],
    permission: PermissionLike,
    describe: Callable[[T], ResourceDescriptor] = as_resource_descriptor,
) -> List[T]:
    """
    Keep only the resources principal may access with permission.

    Items failing any gate are dropped rather than reported. Order is preserved.
    """
    permission = parse_permission(permission)
    return [item for item in resources if authorize(principal, permission, describe(item)).allow]


def authorize_management(
    actor: Principal,
    action: ManagementAction,
    target: Principal,
    new_role: Optional[RoleLike] = None,
) -> Decision:
    """
    Decide whether actor may change target's role or membership.

    ``target`` describes the user as affected by the operation: for GRANT_ROLE its
    role is the role being granted and its organization the one being joined; for
    the other actions it is the target's current role and organization.
    ``new_role`` is the role a CHANGE_ROLE would assign.

    Gates, in order:
    1. Self-target - an actor never changes their own role, removes or deletes
       themselves, whatever their level.
    2. Organization - actor and target share an organization.
    3. GRANT_ROLE requires user:create; every other action requires
       can_manage(actor.role, target.role).
    4. A granted or assigned role never ranks above the actor's own role.
    """
    if actor.id == target.id:
        return Decision.denied(DenialReason.SELF_TARGET_FORBIDDEN)

    if actor.organization_id is None or actor.organization_id != target.organization_id:
        return Decision.denied(DenialReason.CROSS_ORGANIZATION_ACCESS)

    if action == ManagementAction.GRANT_ROLE:
        if Permission.USER_CREATE not in permissions_for(actor.role):
            return Decision.denied(DenialReason.MISSING_PERMISSION)
        new_role = target.role
    elif not can_manage(actor.role, target.role):
        return Decision.denied(DenialReason.INSUFFICIENT_HIERARCHY)

    if new_role is not None and level_of(new_role) > level_of(actor.role):
        return Decision.denied(DenialReason.INSUFFICIENT_HIERARCHY)
    return Decision.allowed()
