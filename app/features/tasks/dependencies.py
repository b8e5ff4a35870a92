"""
Task lookup dependencies.
"""
from typing import Optional
from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.tasks.models import Task
from app.features.users.models import User


async def get_task_or_404(db: AsyncSession, task_id: str) -> Task:
    """
    Get task by ID or raise 404.

    Authorization is the caller's job; this only fetches the row so it can be
    reduced to a resource descriptor.
    """
    result = await db.execute(select(Task).where(Task.id == task_id))
    task = result.scalar_one_or_none()

    if task is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found"
        )

    return task


async def validate_assignee(db: AsyncSession, assigned_to_id: Optional[str], organization_id: str) -> None:
    """
    Ensure an assignee belongs to the task's organization.

    Raises:
        HTTPException: 400 if the user does not exist or is in another organization
    """
    if assigned_to_id is None:
        return

    result = await db.execute(
        select(User.id).where(User.id == assigned_to_id, User.organization_id == organization_id)
    )
    if result.scalar_one_or_none() is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Assignee must be a member of the organization"
        )
