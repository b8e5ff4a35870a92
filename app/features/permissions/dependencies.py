"""
Policy enforcement points.

Routes ask the decision engine for a Decision and hand it to enforce(), which
turns a denial into a generic 403 and records the internal reason in the
audit log. Clients never see which gate failed.

Implements:
- Principal construction from the authenticated user
- require_permission dependency factory for permission-only checks
- enforce() for checks against a fetched resource or management target
"""
from typing import Annotated, Any, Dict, Optional
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.features.audit_logs.dependencies import create_audit_log
from app.features.audit_logs.models import AuditAction
from app.features.permissions.engine import Decision, Principal, authorize
from app.features.permissions.registry import Permission
from app.features.users.dependencies import get_current_user
from app.features.users.models import User
from app.utils import get_logger


log = get_logger(__name__)

FORBIDDEN_DETAIL = "Forbidden"


def principal_for(user: User) -> Principal:
    """Reduce an authenticated user to the principal the engine evaluates."""
    return Principal(id=user.id, role=user.role, organization_id=user.organization_id)


async def get_current_principal(
    user: Annotated[User, Depends(get_current_user)]
) -> Principal:
    return principal_for(user)


async def enforce(
    decision: Decision,
    *,
    db: AsyncSession,
    user: User,
    request: Optional[Request],
    resource: str,
    resource_id: Optional[str] = None,
    permission: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Raise 403 if decision denies, after writing an ACCESS_DENIED audit entry.

    Raises:
        HTTPException: 403 with a generic detail on denial
    """
    if decision.allow:
        return

    reason = decision.reason.value if decision.reason else None
    log.info(
        "Access denied: user=%s role=%s permission=%s resource=%s:%s reason=%s",
        user.id, user.role.value, permission, resource, resource_id, reason,
    )

    audit_details: Dict[str, Any] = {"reason": reason, "permission": permission}
    if request is not None:
        audit_details.update(method=request.method, path=request.url.path)
    if details:
        audit_details.update(details)

    await create_audit_log(
        db,
        user=user,
        action=AuditAction.ACCESS_DENIED,
        resource=resource,
        resource_id=resource_id,
        details=audit_details,
        request=request,
    )

    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=FORBIDDEN_DETAIL)


def require_permission(permission: Permission):
    """
    FastAPI dependency to require a permission (possession gate only).

    Resource-level gates need the fetched resource and are applied in the route
    with authorize() and enforce().

    Usage:
        @router.post("/tasks")
        async def create_task(
            user: User = Depends(require_permission(Permission.TASK_CREATE))
        ):
            pass

    Returns:
        Dependency function that returns the current user if the role holds permission
    """
    async def permission_dependency(
        request: Request,
        db: Annotated[AsyncSession, Depends(get_db)],
        current_user: Annotated[User, Depends(get_current_user)],
    ) -> User:
        decision = authorize(principal_for(current_user), permission)
        await enforce(
            decision,
            db=db,
            user=current_user,
            request=request,
            resource=permission.resource,
            permission=permission.value,
        )
        return current_user

    return permission_dependency
