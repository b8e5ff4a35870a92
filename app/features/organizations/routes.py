"""
Organization feature routes.

Membership changes go through two checks: the member-management permission
against the organization, then the role-management overlay against the target
user (self-protection, shared organization, role hierarchy).
"""
from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.features.audit_logs.dependencies import create_audit_log
from app.features.audit_logs.models import AuditAction
from app.features.organizations.dependencies import get_member_or_404, get_organization_by_id
from app.features.organizations.models import Organization
from app.features.organizations.schemas import (
    MemberRoleRequest,
    OrganizationCreate,
    OrganizationResponse,
    OrganizationUpdate,
)
from app.features.permissions.dependencies import enforce, principal_for, require_permission
from app.features.permissions.engine import (
    ManagementAction,
    Principal,
    as_resource_descriptor,
    authorize,
    authorize_management,
    filter_visible,
)
from app.features.permissions.registry import Permission, Role
from app.features.tasks.models import Task
from app.features.users.dependencies import get_current_user
from app.features.users.models import User
from app.features.users.schemas import UserResponse
from app.utils import get_logger


log = get_logger(__name__)
router = APIRouter(tags=["organizations"])


async def authorize_organization(
    db: AsyncSession,
    user: User,
    request: Request,
    organization: Organization,
    permission: Permission,
) -> None:
    decision = authorize(principal_for(user), permission, as_resource_descriptor(organization))
    await enforce(
        decision, db=db, user=user, request=request,
        resource="organization", resource_id=organization.id, permission=permission.value,
    )


# Organization CRUD endpoints
@router.post("/", response_model=OrganizationResponse, status_code=status.HTTP_201_CREATED)
async def create_organization(
    org_data: OrganizationCreate,
    request: Request,
    user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Create an organization; the caller joins it as OWNER."""
    if user.organization_id is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="You already belong to an organization"
        )

    result = await db.execute(select(Organization).where(Organization.name == org_data.name))
    if result.scalar_one_or_none() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Organization with this name already exists"
        )

    organization = Organization(**org_data.model_dump())
    db.add(organization)
    await db.flush()

    user.organization_id = organization.id
    user.role = Role.OWNER
    await db.commit()
    await db.refresh(organization)
    log.info("User %s created organization %s", user.id, organization.id)

    await create_audit_log(
        db, user=user, action=AuditAction.ORG_CREATE, resource="organization",
        resource_id=organization.id, details={"name": organization.name}, request=request,
    )
    return organization


@router.get("/", response_model=list[OrganizationResponse])
async def list_organizations(
    user: Annotated[User, Depends(require_permission(Permission.ORG_READ))],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """List organizations visible to the caller (at most their own)."""
    if user.organization_id is None:
        return []

    result = await db.execute(select(Organization).where(Organization.id == user.organization_id))
    return filter_visible(principal_for(user), result.scalars().all(), Permission.ORG_READ)


@router.get("/{organization_id}", response_model=OrganizationResponse)
async def get_organization(
    request: Request,
    user: Annotated[User, Depends(get_current_user)],
    organization: Annotated[Organization, Depends(get_organization_by_id)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Get an organization."""
    await authorize_organization(db, user, request, organization, Permission.ORG_READ)
    return organization


@router.patch("/{organization_id}", response_model=OrganizationResponse)
async def update_organization(
    update_data: OrganizationUpdate,
    request: Request,
    user: Annotated[User, Depends(get_current_user)],
    organization: Annotated[Organization, Depends(get_organization_by_id)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Update organization details (org:manage)."""
    await authorize_organization(db, user, request, organization, Permission.ORG_MANAGE)

    changes = update_data.model_dump(exclude_unset=True)
    if changes.get("name") and changes["name"] != organization.name:
        result = await db.execute(select(Organization).where(Organization.name == changes["name"]))
        if result.scalar_one_or_none() is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Organization with this name already exists"
            )

    for key, value in changes.items():
        if key == "name" and value is None:
            continue
        setattr(organization, key, value)

    await db.commit()
    await db.refresh(organization)

    await create_audit_log(
        db, user=user, action=AuditAction.ORG_UPDATE, resource="organization",
        resource_id=organization.id, details={"fields": sorted(changes)}, request=request,
    )
    return organization


@router.delete("/{organization_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_organization(
    request: Request,
    user: Annotated[User, Depends(get_current_user)],
    organization: Annotated[Organization, Depends(get_organization_by_id)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """
    Delete an organization (org:manage).

    Its tasks are deleted and every member, the caller included, is detached
    and reset to VIEWER.
    """
    await authorize_organization(db, user, request, organization, Permission.ORG_MANAGE)
    organization_id = organization.id

    # Recorded first: the caller is among the members reset below
    await create_audit_log(
        db, user=user, action=AuditAction.ORG_DELETE, resource="organization",
        resource_id=organization_id, details={"name": organization.name}, request=request,
        organization_id=organization_id,
    )

    tasks = await db.execute(select(Task).where(Task.organization_id == organization_id))
    for task in tasks.scalars().all():
        await db.delete(task)

    members = await db.execute(select(User).where(User.organization_id == organization_id))
    for member in members.scalars().all():
        member.organization_id = None
        member.role = Role.VIEWER

    await db.delete(organization)
    await db.commit()
    log.info("User %s deleted organization %s", user.id, organization_id)


# Membership endpoints
@router.get("/{organization_id}/users", response_model=list[UserResponse])
async def list_organization_users(
    request: Request,
    user: Annotated[User, Depends(get_current_user)],
    organization: Annotated[Organization, Depends(get_organization_by_id)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """List members of an organization (user:read)."""
    await authorize_organization(db, user, request, organization, Permission.USER_READ)

    result = await db.execute(
        select(User).where(User.organization_id == organization.id).order_by(User.created_at, User.id)
    )
    return result.scalars().all()


@router.post("/{organization_id}/users/{user_id}", response_model=UserResponse)
async def add_user_to_organization(
    user_id: str,
    role_data: MemberRoleRequest,
    request: Request,
    user: Annotated[User, Depends(get_current_user)],
    organization: Annotated[Organization, Depends(get_organization_by_id)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Add a user without an organization as a member with the given role."""
    await authorize_organization(db, user, request, organization, Permission.USER_CREATE)

    result = await db.execute(select(User).where(User.id == user_id))
    target = result.scalar_one_or_none()
    if target is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    decision = authorize_management(
        principal_for(user),
        ManagementAction.GRANT_ROLE,
        Principal(id=target.id, role=role_data.role, organization_id=organization.id),
    )
    await enforce(
        decision, db=db, user=user, request=request, resource="user", resource_id=target.id,
        permission=Permission.USER_CREATE.value, details={"role": role_data.role.value},
    )

    if target.organization_id is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User already belongs to an organization"
        )

    target.organization_id = organization.id
    target.role = role_data.role
    await db.commit()
    await db.refresh(target)

    await create_audit_log(
        db, user=user, action=AuditAction.USER_CREATE, resource="user",
        resource_id=target.id, details={"role": target.role.value}, request=request,
    )
    return target


@router.delete("/{organization_id}/users/{user_id}")
async def remove_user_from_organization(
    user_id: str,
    request: Request,
    user: Annotated[User, Depends(get_current_user)],
    organization: Annotated[Organization, Depends(get_organization_by_id)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Remove a member; they keep their account as a VIEWER without an organization."""
    await authorize_organization(db, user, request, organization, Permission.USER_DELETE)
    target = await get_member_or_404(db, organization.id, user_id)

    decision = authorize_management(principal_for(user), ManagementAction.REMOVE_MEMBER, principal_for(target))
    await enforce(
        decision, db=db, user=user, request=request, resource="user", resource_id=target.id,
        permission=Permission.USER_DELETE.value,
    )

    assigned = await db.execute(
        select(Task).where(Task.organization_id == organization.id, Task.assigned_to_id == target.id)
    )
    for task in assigned.scalars().all():
        task.assigned_to_id = None

    target.organization_id = None
    target.role = Role.VIEWER
    await db.commit()

    await create_audit_log(
        db, user=user, action=AuditAction.USER_UPDATE, resource="user", resource_id=target.id,
        details={"removed_from": organization.id}, request=request,
    )
    return {"message": "User removed from organization"}


@router.patch("/{organization_id}/users/{user_id}/role", response_model=UserResponse)
async def update_user_role(
    user_id: str,
    role_data: MemberRoleRequest,
    request: Request,
    user: Annotated[User, Depends(get_current_user)],
    organization: Annotated[Organization, Depends(get_organization_by_id)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Change a member's role."""
    await authorize_organization(db, user, request, organization, Permission.USER_UPDATE)
    target = await get_member_or_404(db, organization.id, user_id)

    decision = authorize_management(
        principal_for(user), ManagementAction.CHANGE_ROLE, principal_for(target), new_role=role_data.role
    )
    await enforce(
        decision, db=db, user=user, request=request, resource="user", resource_id=target.id,
        permission=Permission.USER_UPDATE.value, details={"role": role_data.role.value},
    )

    previous_role = target.role
    target.role = role_data.role
    await db.commit()
    await db.refresh(target)

    await create_audit_log(
        db, user=user, action=AuditAction.USER_ROLE_CHANGE, resource="user", resource_id=target.id,
        details={"from": previous_role.value, "to": target.role.value}, request=request,
    )
    return target
