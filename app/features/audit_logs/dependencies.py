"""
Audit logging helpers.
"""
from typing import Any, Dict, Optional
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.audit_logs.models import AuditAction, AuditLog
from app.features.users.models import User
from app.utils import get_logger


log = get_logger(__name__)


async def create_audit_log(
    db: AsyncSession,
    user: Optional[User],
    action: AuditAction,
    resource: str,
    resource_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    request: Optional[Request] = None,
    organization_id: Optional[str] = None,
) -> AuditLog:
    """
    Create and commit an audit log entry.

    Args:
        db: Database session
        user: Actor (None for anonymous actions such as failed logins)
        action: Action performed
        resource: Resource type ("task", "user", "organization", "auth")
        resource_id: ID of the resource
        details: Additional JSON details
        request: Incoming request, used for client IP and user agent
        organization_id: Organization context (defaults to the actor's organization)

    Returns:
        Created AuditLog object
    """
    if organization_id is None and user is not None:
        organization_id = user.organization_id

    audit_log = AuditLog(
        user_id=user.id if user else None,
        user_email=user.email if user else None,
        user_role=user.role.value if user else None,
        action=action,
        resource=resource,
        resource_id=resource_id,
        organization_id=organization_id,
        details=details,
        ip_address=request.client.host if request and request.client else None,
        user_agent=request.headers.get("user-agent") if request else None,
    )

    db.add(audit_log)
    await db.commit()
    await db.refresh(audit_log)

    log.info(
        "Audit: user=%s action=%s resource=%s:%s org=%s",
        audit_log.user_id, action.value, resource, resource_id, organization_id,
    )
    if details:
        log.debug("Audit details: %s", details)

    return audit_log
