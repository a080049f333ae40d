"""
Task schemas, shared by every department board.
"""
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.task import TaskKind, TaskPriority, TaskStatus


class TaskCreate(BaseModel):
    kind: TaskKind
    title: str = Field(..., min_length=1, max_length=256)
    description: Optional[str] = None
    assignee_id: Optional[int] = None
    related_client_id: Optional[int] = None
    due_date: Optional[date] = None
    priority: TaskPriority = TaskPriority.medium
    milestone: Optional[int] = Field(default=None, ge=0)
    task_type: Optional[str] = None


class TaskUpdate(BaseModel):
    status: Optional[TaskStatus] = None
    due_date: Optional[date] = None
    assignee_id: Optional[int] = None


class TaskOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    kind: str
    title: str
    description: Optional[str] = None
    assignee_id: Optional[int] = None
    related_client_id: Optional[int] = None
    status: str
    priority: str
    due_date: Optional[date] = None
    archived: bool
    archived_at: Optional[datetime] = None
    justification: Optional[str] = None
    justification_at: Optional[datetime] = None
    milestone: Optional[int] = None
    task_type: Optional[str] = None
