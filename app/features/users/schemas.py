"""
Pydantic schemas for user and authentication requests and responses.
"""
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field

from app.features.permissions.registry import Role


class UserBase(BaseModel):
    """Base user schema with common fields."""
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=255)


class UserCreate(UserBase):
    """Schema for registering a new user."""
    # bcrypt only uses the first 72 bytes
    password: str = Field(..., min_length=8, max_length=72)


class UserUpdate(BaseModel):
    """Schema for updating the caller's own profile."""
    name: str | None = Field(None, min_length=1, max_length=255)


class UserResponse(UserBase):
    """Schema for user responses."""
    id: str
    role: Role
    organization_id: str | None = None
    is_active: bool
    last_login_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=72)


class TokenResponse(BaseModel):
    """Access token issued on login or registration."""
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
