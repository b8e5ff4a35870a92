"""
User feature routes.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.features.audit_logs.dependencies import create_audit_log
from app.features.audit_logs.models import AuditAction
from app.features.permissions.dependencies import enforce, principal_for, require_permission
from app.features.permissions.engine import (
    ManagementAction,
    ResourceDescriptor,
    authorize,
    authorize_management,
    filter_visible,
)
from app.features.permissions.registry import Permission
from app.features.tasks.models import Task
from app.features.users.models import User
from app.features.users.schemas import UserResponse, UserUpdate
from app.features.users.dependencies import get_current_user


router = APIRouter(tags=["users"])


def describe_user(user: User) -> ResourceDescriptor:
    """A user record is owned by that user and scoped to their organization."""
    return ResourceDescriptor(organization_id=user.organization_id, owner_id=user.id)


async def get_user_or_404(db: AsyncSession, user_id: str) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    return user


@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(
    user: Annotated[User, Depends(get_current_user)]
):
    """Get current authenticated user's profile."""
    return user


@router.patch("/me", response_model=UserResponse)
async def update_current_user_profile(
    update_data: UserUpdate,
    user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Update current user's profile."""
    if update_data.name is not None:
        user.name = update_data.name

    await db.commit()
    await db.refresh(user)
    return user


@router.get("/", response_model=list[UserResponse])
async def list_users(
    user: Annotated[User, Depends(require_permission(Permission.USER_READ))],
    db: Annotated[AsyncSession, Depends(get_db)],
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=1000),
):
    """List members of the caller's organization, newest first."""
    result = await db.execute(
        select(User)
        .where(User.organization_id == user.organization_id)
        .order_by(User.created_at.desc(), User.id.desc())
        .offset(skip)
        .limit(limit)
    )
    return filter_visible(principal_for(user), result.scalars().all(), Permission.USER_READ, describe_user)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user_by_id(
    user_id: str,
    request: Request,
    user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Get a member of the caller's organization."""
    target = await get_user_or_404(db, user_id)

    decision = authorize(principal_for(user), Permission.USER_READ, describe_user(target))
    await enforce(
        decision, db=db, user=user, request=request,
        resource="user", resource_id=target.id, permission=Permission.USER_READ.value,
    )
    return target


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    request: Request,
    user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """
    Delete a user from the caller's organization.

    Requires user:delete on the target record and a role above the target's;
    deleting yourself is never allowed.
    """
    target = await get_user_or_404(db, user_id)
    principal = principal_for(user)

    decision = authorize(principal, Permission.USER_DELETE, describe_user(target))
    if decision.allow:
        decision = authorize_management(principal, ManagementAction.DELETE_USER, principal_for(target))
    await enforce(
        decision, db=db, user=user, request=request,
        resource="user", resource_id=target.id, permission=Permission.USER_DELETE.value,
    )

    # Owned tasks go with the user; assignments are cleared
    owned = await db.execute(select(Task).where(Task.owner_id == target.id))
    for task in owned.scalars().all():
        await db.delete(task)
    assigned = await db.execute(select(Task).where(Task.assigned_to_id == target.id))
    for task in assigned.scalars().all():
        task.assigned_to_id = None

    await db.delete(target)
    await db.commit()

    await create_audit_log(
        db, user=user, action=AuditAction.USER_DELETE, resource="user",
        resource_id=user_id, details={"email": target.email}, request=request,
    )

    return {"message": "User deleted successfully", "deleted_user_id": user_id}
