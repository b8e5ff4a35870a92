"""
Pydantic schemas for permission introspection.
"""
from typing import List, Optional
from pydantic import BaseModel, Field

from app.features.permissions.registry import Permission, Role


class RolePermissionsResponse(BaseModel):
    """A role, its hierarchy level and the permissions it grants."""
    role: Role
    level: int
    permissions: List[Permission]


class ResourceCheck(BaseModel):
    """Ownership shape of the resource a permission check targets."""
    organization_id: str
    owner_id: Optional[str] = None
    assigned_to_id: Optional[str] = None


class PermissionCheckRequest(BaseModel):
    """Ask whether the caller may exercise a permission, optionally on a resource."""
    permission: Permission
    resource: Optional[ResourceCheck] = Field(None, description="Omit for creation-type checks")


class PermissionCheckResponse(BaseModel):
    """Outcome only; the internal denial reason is never returned."""
    permission: Permission
    allowed: bool
