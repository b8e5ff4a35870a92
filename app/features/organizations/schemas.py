"""
Pydantic schemas for organization requests and responses.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from app.features.permissions.registry import Role


class OrganizationBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)


class OrganizationCreate(OrganizationBase):
    """Schema for creating an organization. The caller becomes its OWNER."""


class OrganizationUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)


class OrganizationResponse(OrganizationBase):
    id: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MemberRoleRequest(BaseModel):
    """Role to grant when adding a member, or to assign to an existing member."""
    role: Role = Role.VIEWER
