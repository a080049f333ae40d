"""
Delay tracker: which clients were not moved today, which tasks are overdue.

Definitions
-----------
  civil date key   YYYY-MM-DD of a moment in the configured civil timezone
                   (America/Sao_Paulo by default), never the UTC date.
  pending today    tracking record whose last_moved_at civil key differs from
                   today's key; a record moved at 23:59 is pending at 00:00.
  overdue          due_date < today AND status not done AND not archived,
                   oldest due date first, stable on arrival order.

Public API
----------
civil_date_key(moment, time_zone)              -> str
pending_today(records, reference_time, tz)     -> set[int]
overdue_tasks(tasks, today)                    -> list
collect_pending_items(db, user, now, tz)       -> list[PendingItem]
is_item_pending(db, key, now, tz)              -> bool
PendingActionMonitor                           poll cache (60s, change-feed invalidation)
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Iterable, Optional, Union
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.client import Client
from app.models.task import DONE_STATUSES, Task
from app.models.tracking import ClientDailyTracking

logger = logging.getLogger(__name__)

TimeZoneLike = Union[str, ZoneInfo, None]

# Roles that follow every manager's delays, not just their own.
OVERSIGHT_ROLES = frozenset({"ceo", "gestor_projetos", "sucesso_cliente"})

KIND_TASK = "task"
KIND_TRACKING = "tracking"


# ---------------------------------------------------------------------------
# Civil-date helpers
# ---------------------------------------------------------------------------

def resolve_zone(time_zone: TimeZoneLike = None) -> ZoneInfo:
    if isinstance(time_zone, ZoneInfo):
        return time_zone
    return ZoneInfo(time_zone or settings.TIME_ZONE)


def as_utc(moment: datetime) -> datetime:
    """SQLite hands back naive datetimes; they are stored as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def utc_now(override: Optional[datetime] = None) -> datetime:
    """Current instant in UTC, or `override` normalised to UTC."""
    return as_utc(override) if override is not None else datetime.now(timezone.utc)


def civil_date(moment: datetime, time_zone: TimeZoneLike = None) -> date:
    return as_utc(moment).astimezone(resolve_zone(time_zone)).date()


def civil_date_key(moment: datetime, time_zone: TimeZoneLike = None) -> str:
    return civil_date(moment, time_zone).isoformat()


def civil_day_start(day: date, time_zone: TimeZoneLike = None) -> datetime:
    """Local midnight of `day`, as an aware UTC datetime."""
    local = datetime(day.year, day.month, day.day, tzinfo=resolve_zone(time_zone))
    return local.astimezone(timezone.utc)


def _ev(v) -> str:
    return v.value if hasattr(v, "value") else str(v)


# ---------------------------------------------------------------------------
# Pure filters
# ---------------------------------------------------------------------------

def is_moved_today(
    last_moved_at: Optional[datetime],
    reference_time: datetime,
    time_zone: TimeZoneLike = None,
) -> bool:
    if last_moved_at is None:
        return False
    zone = resolve_zone(time_zone)
    return civil_date_key(last_moved_at, zone) == civil_date_key(reference_time, zone)


def pending_today(
    records: Iterable,
    reference_time: datetime,
    time_zone: TimeZoneLike = None,
) -> set[int]:
    """Client ids whose tracking record was not moved on today's civil date."""
    zone = resolve_zone(time_zone)
    return {
        record.client_id
        for record in records
        if not is_moved_today(record.last_moved_at, reference_time, zone)
    }


def is_overdue(task, today: date) -> bool:
    return (
        task.due_date is not None
        and task.due_date < today
        and _ev(task.status) not in DONE_STATUSES
        and not task.archived
    )


def overdue_tasks(tasks: Iterable, today: date) -> list:
    """Overdue tasks, oldest due date first; `sorted` keeps arrival order on ties."""
    return sorted(
        (t for t in tasks if is_overdue(t, today)),
        key=lambda t: t.due_date,
    )


# ---------------------------------------------------------------------------
# Pending items (what the justification workflow walks through)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PendingItem:
    kind: str                 # "task" | "tracking"
    id: int
    title: str
    due: date                 # task due_date, or civil date of the last move
    owner_id: Optional[int]
    client_id: Optional[int] = None

    @property
    def key(self) -> str:
        return f"{self.kind}:{self.id}"


def parse_item_key(key: str) -> tuple[str, int]:
    kind, _, raw_id = key.partition(":")
    if kind not in (KIND_TASK, KIND_TRACKING) or not raw_id.isdigit():
        raise ValueError(f"malformed item key {key!r}")
    return kind, int(raw_id)


def _task_pending(task: Task, today: date) -> bool:
    return is_overdue(task, today) and not task.justification


def _tracking_pending(
    record: ClientDailyTracking,
    now: datetime,
    zone: ZoneInfo,
) -> bool:
    if is_moved_today(record.last_moved_at, now, zone):
        return False
    # A justification filed today covers today's missed movement.
    if record.justification and record.justification_at is not None:
        return civil_date_key(record.justification_at, zone) != civil_date_key(now, zone)
    return True


def collect_pending_items(
    db: Session,
    user,
    now: datetime,
    time_zone: TimeZoneLike = None,
) -> list[PendingItem]:
    """
    Fresh snapshot of unjustified overdue tasks and unmoved tracking records
    visible to `user` (a Profile or anything with `id` and `role`), ordered
    by due key then arrival order.
    """
    zone = resolve_zone(time_zone)
    today = civil_date(now, zone)
    sees_all = user.role in OVERSIGHT_ROLES

    task_q = db.query(Task).filter(
        Task.archived == False,  # noqa: E712
        Task.due_date.isnot(None),
        Task.due_date < today,
        Task.justification.is_(None),
    )
    if not sees_all:
        task_q = task_q.filter(Task.assignee_id == user.id)

    track_q = (
        db.query(ClientDailyTracking, Client.name)
        .join(Client, Client.id == ClientDailyTracking.client_id)
        .filter(Client.archived == False)  # noqa: E712
    )
    if not sees_all:
        track_q = track_q.filter(ClientDailyTracking.manager_id == user.id)

    items: list[PendingItem] = []
    for task in task_q.order_by(Task.id.asc()).all():
        if _task_pending(task, today):
            items.append(PendingItem(
                kind=KIND_TASK,
                id=task.id,
                title=task.title,
                due=task.due_date,
                owner_id=task.assignee_id,
                client_id=task.related_client_id,
            ))
    for record, client_name in track_q.order_by(ClientDailyTracking.id.asc()).all():
        if _tracking_pending(record, now, zone):
            items.append(PendingItem(
                kind=KIND_TRACKING,
                id=record.id,
                title=client_name,
                due=civil_date(record.last_moved_at, zone) if record.last_moved_at else date.min,
                owner_id=record.manager_id,
                client_id=record.client_id,
            ))

    return sorted(items, key=lambda i: i.due)


def is_item_pending(
    db: Session,
    key: str,
    now: datetime,
    time_zone: TimeZoneLike = None,
) -> bool:
    """Re-read a single row and check it still needs a justification."""
    zone = resolve_zone(time_zone)
    kind, item_id = parse_item_key(key)
    if kind == KIND_TASK:
        task = db.get(Task, item_id)
        return task is not None and _task_pending(task, civil_date(now, zone))
    record = db.get(ClientDailyTracking, item_id)
    return record is not None and _tracking_pending(record, now, zone)


# ---------------------------------------------------------------------------
# Poll cache
# ---------------------------------------------------------------------------

class PendingActionMonitor:
    """
    Snapshot-then-filter poll for one view.

    The snapshot is recomputed on first use, after `invalidate()` (wired to
    the change feed), once `poll_interval` has elapsed, and whenever the civil
    date moved on since the last computation.
    """

    def __init__(
        self,
        compute: Callable[[Session, datetime], list[PendingItem]],
        poll_interval: Optional[timedelta] = None,
        time_zone: TimeZoneLike = None,
    ):
        self._compute = compute
        self.poll_interval = poll_interval or timedelta(seconds=settings.DELAY_POLL_SECONDS)
        self._zone = resolve_zone(time_zone)
        self._items: list[PendingItem] = []
        self._computed_at: Optional[datetime] = None
        self._day_key: Optional[str] = None
        self._stale = True

    def invalidate(self, table: Optional[str] = None) -> None:
        self._stale = True

    def needs_refresh(self, now: datetime) -> bool:
        if self._stale or self._computed_at is None:
            return True
        if civil_date_key(now, self._zone) != self._day_key:
            return True
        return as_utc(now) - self._computed_at >= self.poll_interval

    def snapshot(self, db: Session, now: datetime) -> list[PendingItem]:
        if self.needs_refresh(now):
            self._items = self._compute(db, now)
            self._computed_at = as_utc(now)
            self._day_key = civil_date_key(now, self._zone)
            self._stale = False
            logger.debug("pending snapshot recomputed: %d items", len(self._items))
        return list(self._items)
