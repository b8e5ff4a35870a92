"""
Pydantic schemas for task requests and responses.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from app.features.tasks.models import TaskPriority, TaskStatus


class TaskBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=10000)
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    type: Optional[str] = Field(None, max_length=50)
    due_date: Optional[datetime] = None
    assigned_to_id: Optional[str] = Field(None, description="Member of the same organization")


class TaskCreate(TaskBase):
    """Schema for creating a task. Owner and organization come from the caller."""


class TaskUpdate(BaseModel):
    """Schema for updating a task; only provided fields change."""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=10000)
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    type: Optional[str] = Field(None, max_length=50)
    due_date: Optional[datetime] = None
    assigned_to_id: Optional[str] = None


class TaskResponse(TaskBase):
    id: str
    owner_id: str
    organization_id: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
