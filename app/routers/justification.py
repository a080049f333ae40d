"""
Justification sessions router.

POST   /justification/sessions
GET    /justification/sessions/{session_id}
POST   /justification/sessions/{session_id}/submit
POST   /justification/sessions/{session_id}/dismiss
DELETE /justification/sessions/{session_id}

Sessions live in the app's SessionRegistry (`app.state.sessions`).
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError
from app.db.base import get_db
from app.models.profile import Profile
from app.schemas.common import ErrorResponse, ERROR_RESPONSES
from app.schemas.justification import PendingItemOut, SessionOut, SessionStart, SubmitRequest
from app.services.delay_tracker import PendingItem, utc_now
from app.services.justification import (
    JustificationSession,
    SessionRegistry,
    Viewer,
    submit_justification,
)

router = APIRouter(
    prefix="/justification/sessions",
    tags=["justification"],
    responses=ERROR_RESPONSES,
)


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.sessions


def _item_out(item: PendingItem) -> PendingItemOut:
    return PendingItemOut(
        key=item.key,
        kind=item.kind,
        id=item.id,
        title=item.title,
        due=None if item.due == date.min else item.due,
        owner_id=item.owner_id,
        client_id=item.client_id,
    )


def _session_out(session: JustificationSession) -> SessionOut:
    return SessionOut(
        session_id=session.session_id,
        user_id=session.viewer.id,
        state=session.state.value,
        current=_item_out(session.current) if session.current else None,
        pending_count=len(session.pending),
        pending=[_item_out(i) for i in session.pending],
    )


@router.post(
    "",
    response_model=SessionOut,
    status_code=status.HTTP_201_CREATED,
    summary="Start a justification session for a user",
)
def start_session(
    payload: SessionStart,
    now: Optional[datetime] = Query(default=None),
    db: Session = Depends(get_db),
    registry: SessionRegistry = Depends(get_registry),
):
    profile = db.get(Profile, payload.user_id)
    if profile is None:
        raise NotFoundError("User", payload.user_id)
    session = registry.start(Viewer(id=profile.id, role=profile.role))
    session.refresh(db, utc_now(now))
    return _session_out(session)


@router.get(
    "/{session_id}",
    response_model=SessionOut,
    summary="Poll the session: recompute pending items if due and advance",
)
def poll_session(
    session_id: str,
    now: Optional[datetime] = Query(default=None),
    db: Session = Depends(get_db),
    registry: SessionRegistry = Depends(get_registry),
):
    session = registry.get(session_id)
    session.refresh(db, utc_now(now))
    return _session_out(session)


@router.post(
    "/{session_id}/submit",
    response_model=SessionOut,
    summary="File a justification for the item being shown",
    responses={409: {"model": ErrorResponse, "description": "Item is no longer pending."}},
)
def submit(
    session_id: str,
    payload: SubmitRequest,
    now: Optional[datetime] = Query(default=None),
    db: Session = Depends(get_db),
    registry: SessionRegistry = Depends(get_registry),
):
    """
    - **400** blank justification; the session keeps showing the same item.
    - **409** the item is not the one shown or no longer needs a justification;
      the pending set is recomputed before the error is returned.
    """
    session = registry.get(session_id)
    submit_justification(
        db,
        session,
        payload.item_key,
        payload.justification,
        utc_now(now),
        registry.time_zone,
    )
    return _session_out(session)


@router.post(
    "/{session_id}/dismiss",
    response_model=SessionOut,
    summary="Defer the item being shown for this session only",
)
def dismiss(
    session_id: str,
    now: Optional[datetime] = Query(default=None),
    registry: SessionRegistry = Depends(get_registry),
):
    session = registry.get(session_id)
    session.dismiss(utc_now(now))
    return _session_out(session)


@router.delete(
    "/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="End the session",
)
def end_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    registry.end(session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
