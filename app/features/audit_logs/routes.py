"""
Audit log API routes.

All queries are scoped to the caller's organization.
"""
from datetime import datetime
from typing import Annotated, List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.features.audit_logs.models import AuditAction, AuditLog
from app.features.audit_logs.schemas import AuditLogResponse
from app.features.permissions.dependencies import require_permission
from app.features.permissions.registry import Permission
from app.features.users.models import User


router = APIRouter(tags=["audit-logs"])

require_audit_read = require_permission(Permission.AUDIT_READ)


@router.get("/", response_model=List[AuditLogResponse])
async def list_audit_logs(
    user: Annotated[User, Depends(require_audit_read)],
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: Optional[str] = None,
    action: Optional[AuditAction] = None,
    resource: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: int = Query(default=100, ge=1, le=1000),
):
    """List audit logs for the caller's organization, newest first."""
    stmt = select(AuditLog).where(AuditLog.organization_id == user.organization_id)

    if user_id:
        stmt = stmt.where(AuditLog.user_id == user_id)
    if action:
        stmt = stmt.where(AuditLog.action == action)
    if resource:
        stmt = stmt.where(AuditLog.resource == resource)
    if start_date:
        stmt = stmt.where(AuditLog.created_at >= start_date)
    if end_date:
        stmt = stmt.where(AuditLog.created_at <= end_date)

    stmt = stmt.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit)
    result = await db.execute(stmt)
    return result.scalars().all()


@router.get("/resources/{resource}/{resource_id}", response_model=List[AuditLogResponse])
async def list_resource_audit_logs(
    resource: str,
    resource_id: str,
    user: Annotated[User, Depends(require_audit_read)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """History of a single resource."""
    result = await db.execute(
        select(AuditLog)
        .where(
            AuditLog.organization_id == user.organization_id,
            AuditLog.resource == resource,
            AuditLog.resource_id == resource_id,
        )
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
    )
    return result.scalars().all()


@router.get("/users/{user_id}", response_model=List[AuditLogResponse])
async def list_user_activity(
    user_id: str,
    user: Annotated[User, Depends(require_audit_read)],
    db: Annotated[AsyncSession, Depends(get_db)],
    limit: int = Query(default=50, ge=1, le=1000),
):
    """Recent activity of one user within the caller's organization."""
    result = await db.execute(
        select(AuditLog)
        .where(AuditLog.organization_id == user.organization_id, AuditLog.user_id == user_id)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .limit(limit)
    )
    return result.scalars().all()
