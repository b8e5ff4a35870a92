"""
Permission introspection routes.

Lets clients render role tables and hide actions the caller cannot take. These
endpoints are informational; every mutating route still enforces on its own.
"""
from typing import Annotated, List
from fastapi import APIRouter, Depends

from app.features.permissions.dependencies import get_current_principal
from app.features.permissions.engine import Principal, ResourceDescriptor, authorize
from app.features.permissions.registry import Role, level_of, permissions_for
from app.features.permissions.schemas import (
    PermissionCheckRequest,
    PermissionCheckResponse,
    RolePermissionsResponse,
)
from app.utils import get_logger


log = get_logger(__name__)
router = APIRouter()


def describe_role(role: Role) -> RolePermissionsResponse:
    return RolePermissionsResponse(
        role=role,
        level=level_of(role),
        permissions=sorted(permissions_for(role), key=lambda p: p.value),
    )


@router.get("/roles", response_model=List[RolePermissionsResponse])
async def list_roles(
    principal: Annotated[Principal, Depends(get_current_principal)]
):
    """List every role with its level and permissions, highest level first."""
    return [describe_role(role) for role in sorted(Role, key=level_of, reverse=True)]


@router.get("/me", response_model=RolePermissionsResponse)
async def get_my_permissions(
    principal: Annotated[Principal, Depends(get_current_principal)]
):
    """Role, level and permissions of the caller."""
    return describe_role(principal.role)


@router.post("/check", response_model=PermissionCheckResponse)
async def check_permission(
    check: PermissionCheckRequest,
    principal: Annotated[Principal, Depends(get_current_principal)]
):
    """Evaluate a permission for the caller without performing any action."""
    resource = ResourceDescriptor(**check.resource.model_dump()) if check.resource else None
    decision = authorize(principal, check.permission, resource)
    if not decision.allow:
        log.debug("Permission check denied for %s: %s", principal.id, decision.reason)
    return PermissionCheckResponse(permission=check.permission, allowed=decision.allow)
