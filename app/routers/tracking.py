"""
Tracking board router.

POST   /tracking
POST   /tracking/{tracking_id}/move
DELETE /tracking/{tracking_id}
GET    /tracking/pending
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.db.base import get_db
from app.schemas.common import ERROR_RESPONSES
from app.schemas.tracking import TrackingCreate, TrackingMove, TrackingOut
from app.services import tracking as tracking_service
from app.services.delay_tracker import utc_now

router = APIRouter(prefix="/tracking", tags=["tracking"], responses=ERROR_RESPONSES)


@router.post("", response_model=TrackingOut, summary="Add a client to a manager's board")
def add_to_tracking(payload: TrackingCreate, response: Response, db: Session = Depends(get_db)):
    """Idempotent: returns **201** when created, **200** with the existing card otherwise."""
    record, created = tracking_service.add_client_to_tracking(
        db, payload.client_id, payload.manager_id, payload.day.value
    )
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return record


@router.get(
    "/pending",
    response_model=list[TrackingOut],
    summary="Cards not moved on today's civil date",
)
def pending(
    manager_id: Optional[int] = Query(default=None),
    now: Optional[datetime] = Query(default=None, description="Reference time. Defaults to now."),
    db: Session = Depends(get_db),
):
    return tracking_service.list_pending_tracking(db, utc_now(now), manager_id)


@router.post("/{tracking_id}/move", response_model=TrackingOut, summary="Move a card to a weekday")
def move(
    tracking_id: int,
    payload: TrackingMove,
    now: Optional[datetime] = Query(default=None),
    db: Session = Depends(get_db),
):
    return tracking_service.move_client(db, tracking_id, payload.day.value, utc_now(now))


@router.delete(
    "/{tracking_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a card from the board",
)
def remove(tracking_id: int, db: Session = Depends(get_db)):
    tracking_service.remove_from_tracking(db, tracking_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
