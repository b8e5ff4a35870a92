"""
Task routes.

Each route names the ``:own`` variant of its permission; the engine lets roles
holding the ``:all`` variant act on every task in their organization and limits
everyone else to tasks they own (or, for reads, are assigned to).
"""
from typing import Annotated, List
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.features.audit_logs.dependencies import create_audit_log
from app.features.audit_logs.models import AuditAction
from app.features.permissions.dependencies import enforce, principal_for, require_permission
from app.features.permissions.engine import as_resource_descriptor, authorize, filter_visible
from app.features.permissions.registry import Permission
from app.features.tasks.dependencies import get_task_or_404, validate_assignee
from app.features.tasks.models import Task, TaskStatus
from app.features.tasks.schemas import TaskCreate, TaskResponse, TaskUpdate
from app.features.users.dependencies import get_current_user
from app.features.users.models import User


router = APIRouter(tags=["tasks"])

# Columns that cannot be cleared by sending null
REQUIRED_FIELDS = {"title", "status", "priority"}


async def list_visible_tasks(db: AsyncSession, user: User, *criteria) -> List[Task]:
    """Tasks in the caller's organization that the engine lets them read."""
    if user.organization_id is None:
        return []

    result = await db.execute(
        select(Task)
        .where(Task.organization_id == user.organization_id, *criteria)
        .order_by(Task.created_at.desc(), Task.id.desc())
    )
    return filter_visible(principal_for(user), result.scalars().all(), Permission.TASK_READ_OWN)


async def get_authorized_task(
    db: AsyncSession,
    user: User,
    request: Request,
    task_id: str,
    permission: Permission,
) -> Task:
    task = await get_task_or_404(db, task_id)
    decision = authorize(principal_for(user), permission, as_resource_descriptor(task))
    await enforce(
        decision, db=db, user=user, request=request,
        resource="task", resource_id=task.id, permission=permission.value,
    )
    return task


@router.post("/", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    task_data: TaskCreate,
    request: Request,
    user: Annotated[User, Depends(require_permission(Permission.TASK_CREATE))],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Create a task owned by the caller in the caller's organization."""
    if user.organization_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You must belong to an organization to create tasks"
        )

    await validate_assignee(db, task_data.assigned_to_id, user.organization_id)

    task = Task(**task_data.model_dump(), owner_id=user.id, organization_id=user.organization_id)
    db.add(task)
    await db.commit()
    await db.refresh(task)

    await create_audit_log(
        db, user=user, action=AuditAction.TASK_CREATE, resource="task",
        resource_id=task.id, details={"title": task.title}, request=request,
    )
    return task


@router.get("/", response_model=List[TaskResponse])
async def list_tasks(
    user: Annotated[User, Depends(require_permission(Permission.TASK_READ_OWN))],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """List tasks visible to the caller."""
    return await list_visible_tasks(db, user)


@router.get("/status/{task_status}", response_model=List[TaskResponse])
async def list_tasks_by_status(
    task_status: TaskStatus,
    user: Annotated[User, Depends(require_permission(Permission.TASK_READ_OWN))],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """List visible tasks with a given status."""
    return await list_visible_tasks(db, user, Task.status == task_status)


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: str,
    request: Request,
    user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Get a single task."""
    return await get_authorized_task(db, user, request, task_id, Permission.TASK_READ_OWN)


@router.patch("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: str,
    update_data: TaskUpdate,
    request: Request,
    user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Update a task."""
    task = await get_authorized_task(db, user, request, task_id, Permission.TASK_UPDATE_OWN)

    changes = update_data.model_dump(exclude_unset=True)
    if "assigned_to_id" in changes:
        await validate_assignee(db, changes["assigned_to_id"], task.organization_id)
    for key, value in changes.items():
        if value is None and key in REQUIRED_FIELDS:
            continue
        setattr(task, key, value)

    await db.commit()
    await db.refresh(task)

    await create_audit_log(
        db, user=user, action=AuditAction.TASK_UPDATE, resource="task",
        resource_id=task.id, details={"fields": sorted(changes)}, request=request,
    )
    return task


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: str,
    request: Request,
    user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Delete a task."""
    task = await get_authorized_task(db, user, request, task_id, Permission.TASK_DELETE_OWN)

    await db.delete(task)
    await db.commit()

    await create_audit_log(
        db, user=user, action=AuditAction.TASK_DELETE, resource="task",
        resource_id=task_id, request=request,
    )
