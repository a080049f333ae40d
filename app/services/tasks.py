"""
Task service shared by every department board (ads, comercial, department,
onboarding). One table, discriminated by `kind`.
"""
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.core.errors import NotFoundError, ValidationError
from app.db.base import commit_or_raise
from app.models.task import Task, TaskKind, TaskPriority, TaskStatus
from app.services.delay_tracker import as_utc, overdue_tasks

logger = logging.getLogger(__name__)


def get_task(db: Session, task_id: int) -> Task:
    task = db.get(Task, task_id)
    if task is None:
        raise NotFoundError("Task", task_id)
    return task


def create_task(
    db: Session,
    kind: str,
    title: str,
    assignee_id: Optional[int] = None,
    related_client_id: Optional[int] = None,
    due_date: Optional[date] = None,
    priority: str = TaskPriority.medium.value,
    description: Optional[str] = None,
    milestone: Optional[int] = None,
    task_type: Optional[str] = None,
) -> Task:
    if not title or not title.strip():
        raise ValidationError("Task title is required.", field="title")
    task = Task(
        kind=TaskKind(kind),
        title=title.strip(),
        description=description,
        assignee_id=assignee_id,
        related_client_id=related_client_id,
        due_date=due_date,
        priority=TaskPriority(priority),
        status=TaskStatus.todo,
        archived=False,
        milestone=milestone,
        task_type=task_type,
    )
    db.add(task)
    commit_or_raise(db, "create_task")
    db.refresh(task)
    return task


def update_task(
    db: Session,
    task_id: int,
    status: Optional[str] = None,
    due_date: Optional[date] = None,
    assignee_id: Optional[int] = None,
) -> Task:
    task = get_task(db, task_id)
    if status is not None:
        task.status = TaskStatus(status)
    if due_date is not None:
        task.due_date = due_date
    if assignee_id is not None:
        task.assignee_id = assignee_id
    commit_or_raise(db, "update_task")
    db.refresh(task)
    return task


def archive_task(db: Session, task_id: int, now: datetime) -> Task:
    task = get_task(db, task_id)
    task.archived = True
    task.archived_at = as_utc(now)
    commit_or_raise(db, "archive_task")
    db.refresh(task)
    logger.info("task %s archived", task_id)
    return task


def list_overdue_tasks(
    db: Session,
    today: date,
    assignee_id: Optional[int] = None,
    kind: Optional[str] = None,
) -> list[Task]:
    q = db.query(Task).filter(Task.archived == False, Task.due_date < today)  # noqa: E712
    if assignee_id is not None:
        q = q.filter(Task.assignee_id == assignee_id)
    if kind is not None:
        q = q.filter(Task.kind == TaskKind(kind))
    return overdue_tasks(q.order_by(Task.id.asc()).all(), today)
