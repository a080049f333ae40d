"""
Onboarding milestones: onboarding-kind tasks grouped by `milestone`.
"""
from __future__ import annotations

from collections import OrderedDict
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from app.models.task import DONE_STATUSES, Task, TaskKind, TaskStatus
from app.services.clients import get_client


def _ev(v) -> str:
    return v.value if hasattr(v, "value") else str(v)


def _is_done(task) -> bool:
    return _ev(task.status) in DONE_STATUSES


def group_by_milestone(tasks: Iterable) -> "OrderedDict[int, list]":
    """Milestones in ascending order; tasks without one go to milestone 0."""
    groups: dict[int, list] = {}
    for task in tasks:
        groups.setdefault(task.milestone or 0, []).append(task)
    return OrderedDict(sorted(groups.items()))


def onboarding_progress(tasks: Iterable) -> int:
    tasks = list(tasks)
    if not tasks:
        return 0
    done = sum(1 for t in tasks if _is_done(t))
    return round(done * 100 / len(tasks))


def current_onboarding_step(tasks: Iterable) -> Optional[str]:
    """task_type of the first open task, walking milestones in order."""
    for _, group in group_by_milestone(tasks).items():
        for task in group:
            if _ev(task.status) in (TaskStatus.todo.value, TaskStatus.doing.value):
                return task.task_type
    return None


def client_onboarding(db: Session, client_id: int) -> dict:
    get_client(db, client_id)
    tasks = (
        db.query(Task)
        .filter(
            Task.kind == TaskKind.onboarding,
            Task.related_client_id == client_id,
            Task.archived == False,  # noqa: E712
        )
        .order_by(Task.id.asc())
        .all()
    )
    milestones = [
        {
            "milestone": milestone,
            "progress": onboarding_progress(group),
            "completed": all(_is_done(t) for t in group),
            "tasks": group,
        }
        for milestone, group in group_by_milestone(tasks).items()
    ]
    return {
        "client_id": client_id,
        "progress": onboarding_progress(tasks),
        "current_step": current_onboarding_step(tasks),
        "milestones": milestones,
    }
