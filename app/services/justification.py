"""
Justification workflow: walk a user through their pending items one at a time.

States
------
  idle        nothing pending, or nothing shown yet
  showing     exactly one item presented for justification
  dismissed   user deferred the shown item; lives only in this session
  justified   justification written to the item's row

Transitions
-----------
  idle                 -> showing(first)   pending set becomes non-empty
  showing(x)           -> justified(x)     successful submit
  showing(x)           -> dismissed(x)     dismiss
  justified|dismissed  -> showing(next)    once the advance delay has elapsed
  showing(x)           -> showing(next)    x dropped out of the pending set
  any                  -> idle             pending set becomes empty

Sessions are explicit objects held by a SessionRegistry that the FastAPI app
owns; a fresh session knows nothing about another session's dismissals.
"""
from __future__ import annotations

import enum
import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import NotFoundError, StaleItemError, ValidationError
from app.db.base import commit_or_raise
from app.models.task import Task
from app.models.tracking import ClientDailyTracking
from app.services.change_feed import ChangeFeed
from app.services.delay_tracker import (
    KIND_TASK,
    PendingActionMonitor,
    PendingItem,
    TimeZoneLike,
    as_utc,
    collect_pending_items,
    is_item_pending,
    parse_item_key,
)

logger = logging.getLogger(__name__)

# Tables whose writes can change somebody's pending set.
WATCHED_TABLES = (Task.__tablename__, ClientDailyTracking.__tablename__)


class SessionState(str, enum.Enum):
    idle = "idle"
    showing = "showing"
    dismissed = "dismissed"
    justified = "justified"


@dataclass(frozen=True)
class Viewer:
    """The user a session belongs to, detached from any ORM session."""
    id: int
    role: str


class JustificationSession:
    def __init__(
        self,
        session_id: str,
        viewer: Viewer,
        monitor: PendingActionMonitor,
        advance_delay: Optional[timedelta] = None,
    ):
        if advance_delay is None:
            advance_delay = timedelta(milliseconds=settings.JUSTIFICATION_ADVANCE_DELAY_MS)
        if advance_delay <= timedelta(0):
            raise ValueError("advance_delay must be greater than zero")
        self.session_id = session_id
        self.viewer = viewer
        self.monitor = monitor
        self.advance_delay = advance_delay
        self.state = SessionState.idle
        self.current: Optional[PendingItem] = None
        self.pending: list[PendingItem] = []
        self._handled: set[str] = set()
        self._resolved_at: Optional[datetime] = None
        self._lock = threading.RLock()

    # --- state machine -----------------------------------------------------

    def sync(self, items: list[PendingItem], now: datetime) -> SessionState:
        """Fold a fresh pending snapshot into the session."""
        with self._lock:
            self.pending = [i for i in items if i.key not in self._handled]

            if not self.pending:
                self._go_idle()
            elif self.state == SessionState.idle:
                self._show(self.pending[0])
            elif self.state == SessionState.showing:
                keys = {i.key for i in self.pending}
                if self.current is None or self.current.key not in keys:
                    self._show(self.pending[0])
            elif as_utc(now) - self._resolved_at >= self.advance_delay:
                self._show(self.pending[0])
            return self.state

    def refresh(self, db: Session, now: datetime) -> SessionState:
        return self.sync(self.monitor.snapshot(db, now), now)

    def dismiss(self, now: datetime) -> PendingItem:
        with self._lock:
            if self.state != SessionState.showing or self.current is None:
                raise ValidationError("No item is being shown.")
            item = self.current
            self._handled.add(item.key)
            self.state = SessionState.dismissed
            self._resolved_at = as_utc(now)
            return item

    def mark_justified(self, item_key: str, now: datetime) -> PendingItem:
        with self._lock:
            if not self.is_showing(item_key):
                raise StaleItemError(item_key)
            item = self.current
            self._handled.add(item.key)
            self.state = SessionState.justified
            self._resolved_at = as_utc(now)
            return item

    def _show(self, item: PendingItem) -> None:
        self.current = item
        self.state = SessionState.showing
        self._resolved_at = None

    def _go_idle(self) -> None:
        self.current = None
        self.state = SessionState.idle
        self._resolved_at = None

    def is_showing(self, item_key: str) -> bool:
        return (
            self.state == SessionState.showing
            and self.current is not None
            and self.current.key == item_key
        )


# ---------------------------------------------------------------------------
# Submit
# ---------------------------------------------------------------------------

def submit_justification(
    db: Session,
    session: JustificationSession,
    item_key: str,
    text: Optional[str],
    now: datetime,
    time_zone: TimeZoneLike = None,
) -> PendingItem:
    """
    File a justification for the shown item.

    Empty text raises ValidationError and leaves the session showing the same
    item. An item that is not the shown one, or whose row no longer needs a
    justification, raises StaleItemError after forcing a recompute.
    """
    if text is None or not text.strip():
        raise ValidationError("Justification text is required.", field="justification")

    try:
        kind, item_id = parse_item_key(item_key)
    except ValueError:
        raise ValidationError(f"Malformed item key {item_key!r}.", field="item_key")

    # Held from the staleness check to the transition so a concurrent poll
    # cannot swap the shown item between the write and mark_justified.
    with session._lock:
        if not session.is_showing(item_key) or not is_item_pending(db, item_key, now, time_zone):
            session.monitor.invalidate()
            session.refresh(db, now)
            logger.info("stale justification for %s in session %s", item_key, session.session_id)
            raise StaleItemError(item_key)

        model = Task if kind == KIND_TASK else ClientDailyTracking
        db.execute(
            update(model)
            .where(model.id == item_id)
            .values(justification=text.strip(), justification_at=as_utc(now))
        )
        commit_or_raise(db, "submit_justification")
        item = session.mark_justified(item_key, now)

    session.monitor.invalidate()
    logger.info("justification filed for %s by user %s", item_key, session.viewer.id)
    return item


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class SessionRegistry:
    """Owns live sessions and wires each session's monitor to the change feed."""

    def __init__(
        self,
        feed: Optional[ChangeFeed] = None,
        poll_interval: Optional[timedelta] = None,
        advance_delay: Optional[timedelta] = None,
        time_zone: TimeZoneLike = None,
    ):
        self.feed = feed
        self.poll_interval = poll_interval
        self.advance_delay = advance_delay
        self.time_zone = time_zone
        self._sessions: dict[str, JustificationSession] = {}
        self._unsubscribers: dict[str, list[Callable[[], None]]] = {}
        self._lock = threading.Lock()

    def start(self, viewer: Viewer) -> JustificationSession:
        def compute(db: Session, now: datetime) -> list[PendingItem]:
            return collect_pending_items(db, viewer, now, self.time_zone)

        monitor = PendingActionMonitor(compute, self.poll_interval, self.time_zone)
        session = JustificationSession(
            session_id=uuid.uuid4().hex,
            viewer=viewer,
            monitor=monitor,
            advance_delay=self.advance_delay,
        )
        unsubscribers = []
        if self.feed is not None:
            for table in WATCHED_TABLES:
                unsubscribers.append(self.feed.subscribe(table, monitor.invalidate))

        with self._lock:
            self._sessions[session.session_id] = session
            self._unsubscribers[session.session_id] = unsubscribers
        logger.info("justification session %s started for user %s", session.session_id, viewer.id)
        return session

    def get(self, session_id: str) -> JustificationSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise NotFoundError("Justification session", session_id)
        return session

    def end(self, session_id: str) -> None:
        with self._lock:
            session = self._sessions.pop(session_id, None)
            unsubscribers = self._unsubscribers.pop(session_id, [])
        if session is None:
            raise NotFoundError("Justification session", session_id)
        for unsubscribe in unsubscribers:
            unsubscribe()
        logger.info("justification session %s ended", session_id)

    def close(self) -> None:
        with self._lock:
            session_ids = list(self._sessions)
        for session_id in session_ids:
            self.end(session_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
