"""
OKRs router.

GET   /okrs
POST  /okrs
GET   /okrs/due-soon
POST  /okrs/archive-weekly
PATCH /okrs/{okr_id}
POST  /okrs/{okr_id}/archive
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.db.base import get_db
from app.models.okr import OKR, OKRType
from app.schemas.common import ERROR_RESPONSES
from app.schemas.okr import ArchiveWeeklyResponse, OKRCreate, OKROut, OKRUpdate
from app.services import okrs as okr_service
from app.services.delay_tracker import civil_date, utc_now

router = APIRouter(prefix="/okrs", tags=["okrs"], responses=ERROR_RESPONSES)


def _okr_out(okr: OKR) -> OKROut:
    out = OKROut.model_validate(okr)
    out.progress = okr_service.progress_percent(okr.current_value, okr.target_value)
    return out


@router.get("", response_model=list[OKROut], summary="List non-archived OKRs")
def list_okrs(
    type: Optional[OKRType] = Query(default=None),
    db: Session = Depends(get_db),
):
    return [_okr_out(o) for o in okr_service.list_okrs(db, type.value if type else None)]


@router.post(
    "",
    response_model=OKROut,
    status_code=status.HTTP_201_CREATED,
    summary="Create an OKR",
)
def create(payload: OKRCreate, db: Session = Depends(get_db)):
    data = payload.model_dump()
    data["type"] = payload.type.value
    return _okr_out(okr_service.create_okr(db, **data))


@router.get(
    "/due-soon",
    response_model=list[OKROut],
    summary="Active OKRs ending within the warning window",
)
def due_soon(
    today: Optional[date] = Query(default=None),
    db: Session = Depends(get_db),
):
    today = today or civil_date(utc_now())
    return [_okr_out(o) for o in okr_service.okrs_due_soon(db, today)]


@router.post(
    "/archive-weekly",
    response_model=ArchiveWeeklyResponse,
    summary="Archive every active weekly OKR",
)
def archive_weekly(db: Session = Depends(get_db)):
    return ArchiveWeeklyResponse(archived=okr_service.archive_weekly_okrs(db))


@router.patch("/{okr_id}", response_model=OKROut, summary="Update an OKR")
def update(okr_id: int, payload: OKRUpdate, db: Session = Depends(get_db)):
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("status") is not None:
        changes["status"] = payload.status.value
    return _okr_out(okr_service.update_okr(db, okr_id, **changes))


@router.post("/{okr_id}/archive", response_model=OKROut, summary="Archive an OKR")
def archive(okr_id: int, db: Session = Depends(get_db)):
    return _okr_out(okr_service.archive_okr(db, okr_id))
