"""
OKRs: annual and weekly objectives with numeric progress.

Archiving is a status flip, never a delete. `archive_weekly_okrs` closes the
week by archiving every active weekly OKR in one UPDATE.
"""
from __future__ import annotations

import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import NotFoundError, ValidationError
from app.db.base import commit_or_raise
from app.models.okr import OKR, OKRStatus, OKRType

logger = logging.getLogger(__name__)

_UPDATABLE = ("title", "description", "target_value", "current_value", "start_date", "end_date", "status")


def get_okr(db: Session, okr_id: int) -> OKR:
    okr = db.get(OKR, okr_id)
    if okr is None:
        raise NotFoundError("OKR", okr_id)
    return okr


def progress_percent(current: Optional[Decimal], target: Optional[Decimal]) -> int:
    """0..100; an OKR without a positive target has no measurable progress."""
    if not target or target <= 0 or current is None:
        return 0
    return min(100, int(Decimal(current) * 100 / Decimal(target)))


def create_okr(
    db: Session,
    title: str,
    type: str = OKRType.annual.value,
    description: Optional[str] = None,
    target_value: Optional[Decimal] = None,
    current_value: Optional[Decimal] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    created_by: Optional[int] = None,
) -> OKR:
    if not title or not title.strip():
        raise ValidationError("OKR title is required.", field="title")
    if start_date and end_date and end_date < start_date:
        raise ValidationError("end_date must not precede start_date.", field="end_date")
    okr = OKR(
        title=title.strip(),
        description=description,
        type=OKRType(type),
        target_value=target_value,
        current_value=current_value,
        start_date=start_date,
        end_date=end_date,
        status=OKRStatus.active,
        created_by=created_by,
    )
    db.add(okr)
    commit_or_raise(db, "create_okr")
    db.refresh(okr)
    return okr


def update_okr(db: Session, okr_id: int, **changes) -> OKR:
    okr = get_okr(db, okr_id)
    unknown = set(changes) - set(_UPDATABLE)
    if unknown:
        raise ValidationError(f"Unknown OKR fields: {', '.join(sorted(unknown))}.")
    if "title" in changes and not (changes["title"] or "").strip():
        raise ValidationError("OKR title is required.", field="title")
    for field, value in changes.items():
        if field == "status":
            value = OKRStatus(value)
        setattr(okr, field, value)
    commit_or_raise(db, "update_okr")
    db.refresh(okr)
    return okr


def archive_okr(db: Session, okr_id: int) -> OKR:
    return update_okr(db, okr_id, status=OKRStatus.archived.value)


def archive_weekly_okrs(db: Session) -> int:
    result = db.execute(
        update(OKR)
        .where(OKR.type == OKRType.weekly, OKR.status == OKRStatus.active)
        .values(status=OKRStatus.archived)
    )
    commit_or_raise(db, "archive_weekly_okrs")
    logger.info("archived %d weekly OKRs", result.rowcount)
    return result.rowcount


def list_okrs(db: Session, type: Optional[str] = None) -> list[OKR]:
    q = db.query(OKR).filter(OKR.status != OKRStatus.archived)
    if type is not None:
        q = q.filter(OKR.type == OKRType(type))
    return q.order_by(OKR.created_at.desc(), OKR.id.desc()).all()


def okrs_due_soon(db: Session, today: date, within_days: Optional[int] = None) -> list[OKR]:
    """Active OKRs whose end date falls in [today, today + within_days]."""
    if within_days is None:
        within_days = settings.OKR_DEADLINE_WARNING_DAYS
    return (
        db.query(OKR)
        .filter(
            OKR.status == OKRStatus.active,
            OKR.end_date.isnot(None),
            OKR.end_date >= today,
            OKR.end_date <= today + timedelta(days=within_days),
        )
        .order_by(OKR.end_date.asc(), OKR.id.asc())
        .all()
    )
