"""
Weekly movement board: which weekday column each (client, manager) sits in.
"""
from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from app.core.errors import NotFoundError, ValidationError
from app.db.base import commit_or_raise
from app.models.client import Client
from app.models.tracking import ClientDailyTracking, WeekDay
from app.services.clients import get_client
from app.services.delay_tracker import TimeZoneLike, as_utc, is_moved_today, resolve_zone

logger = logging.getLogger(__name__)


def get_tracking(db: Session, tracking_id: int) -> ClientDailyTracking:
    record = db.get(ClientDailyTracking, tracking_id)
    if record is None:
        raise NotFoundError("Tracking record", tracking_id)
    return record


def add_client_to_tracking(
    db: Session,
    client_id: int,
    manager_id: int,
    day: str = WeekDay.segunda.value,
) -> tuple[ClientDailyTracking, bool]:
    """
    Put a client on a manager's board. Idempotent: an existing
    (client, manager) row is returned untouched. Returns (record, created).
    """
    get_client(db, client_id)
    existing = (
        db.query(ClientDailyTracking)
        .filter(
            ClientDailyTracking.client_id == client_id,
            ClientDailyTracking.manager_id == manager_id,
        )
        .first()
    )
    if existing is not None:
        return existing, False

    record = ClientDailyTracking(
        client_id=client_id,
        manager_id=manager_id,
        current_day=WeekDay(day),
        is_delayed=False,
    )
    db.add(record)
    commit_or_raise(db, "add_client_to_tracking")
    db.refresh(record)
    logger.info("client %s added to tracking for manager %s", client_id, manager_id)
    return record, True


def move_client(
    db: Session,
    tracking_id: int,
    day: str,
    now: datetime,
) -> ClientDailyTracking:
    if day not in WeekDay.__members__:
        raise ValidationError(f"Unknown weekday {day!r}.", field="day")
    record = get_tracking(db, tracking_id)
    record.current_day = WeekDay(day)
    record.last_moved_at = as_utc(now)
    record.is_delayed = False
    commit_or_raise(db, "move_client")
    db.refresh(record)
    return record


def remove_from_tracking(db: Session, tracking_id: int) -> None:
    record = get_tracking(db, tracking_id)
    db.delete(record)
    commit_or_raise(db, "remove_from_tracking")
    logger.info("tracking record %s removed", tracking_id)


def list_pending_tracking(
    db: Session,
    now: datetime,
    manager_id: int | None = None,
    time_zone: TimeZoneLike = None,
) -> list[ClientDailyTracking]:
    """Tracking rows of active clients that were not moved on today's civil date."""
    q = (
        db.query(ClientDailyTracking)
        .join(Client, Client.id == ClientDailyTracking.client_id)
        .filter(Client.archived == False)  # noqa: E712
    )
    if manager_id is not None:
        q = q.filter(ClientDailyTracking.manager_id == manager_id)
    records = q.order_by(ClientDailyTracking.id.asc()).all()
    zone = resolve_zone(time_zone)
    return [r for r in records if not is_moved_today(r.last_moved_at, now, zone)]
