"""
Tasks router.

POST  /tasks
PATCH /tasks/{task_id}
POST  /tasks/{task_id}/archive
GET   /tasks/overdue
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.db.base import get_db
from app.models.task import TaskKind
from app.schemas.common import ERROR_RESPONSES
from app.schemas.task import TaskCreate, TaskOut, TaskUpdate
from app.services import tasks as task_service
from app.services.delay_tracker import civil_date, utc_now

router = APIRouter(prefix="/tasks", tags=["tasks"], responses=ERROR_RESPONSES)


@router.post(
    "",
    response_model=TaskOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a task on any board",
)
def create(payload: TaskCreate, db: Session = Depends(get_db)):
    return task_service.create_task(
        db,
        kind=payload.kind.value,
        title=payload.title,
        assignee_id=payload.assignee_id,
        related_client_id=payload.related_client_id,
        due_date=payload.due_date,
        priority=payload.priority.value,
        description=payload.description,
        milestone=payload.milestone,
        task_type=payload.task_type,
    )


@router.get(
    "/overdue",
    response_model=list[TaskOut],
    summary="Overdue tasks, oldest due date first",
)
def overdue(
    assignee_id: Optional[int] = Query(default=None),
    kind: Optional[TaskKind] = Query(default=None),
    today: Optional[date] = Query(default=None, description="Defaults to today's civil date."),
    db: Session = Depends(get_db),
):
    """Overdue = `due_date < today` and not done and not archived."""
    return task_service.list_overdue_tasks(
        db,
        today or civil_date(utc_now()),
        assignee_id=assignee_id,
        kind=kind.value if kind else None,
    )


@router.patch("/{task_id}", response_model=TaskOut, summary="Update task status or dates")
def update(task_id: int, payload: TaskUpdate, db: Session = Depends(get_db)):
    return task_service.update_task(
        db,
        task_id,
        status=payload.status.value if payload.status else None,
        due_date=payload.due_date,
        assignee_id=payload.assignee_id,
    )


@router.post("/{task_id}/archive", response_model=TaskOut, summary="Archive a task")
def archive(
    task_id: int,
    now: Optional[datetime] = Query(default=None),
    db: Session = Depends(get_db),
):
    return task_service.archive_task(db, task_id, utc_now(now))
