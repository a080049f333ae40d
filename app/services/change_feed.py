"""
In-process change feed keyed by table name.

Committed ORM writes publish the names of the tables they touched. Events
carry no row payload: subscribers treat any event as "invalidate and
recompute". Listeners run synchronously in the committing thread and must
stay cheap (flip a flag, nothing more).
"""
from __future__ import annotations

import logging
import threading
from collections import defaultdict
from typing import Callable

from sqlalchemy import event
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

Listener = Callable[[str], None]

_PENDING_KEY = "change_feed_tables"


class ChangeFeed:
    def __init__(self):
        self._listeners: dict[str, list[Listener]] = defaultdict(list)
        self._lock = threading.Lock()
        self._bound: list = []

    # --- subscriptions -----------------------------------------------------

    def subscribe(self, table: str, listener: Listener) -> Callable[[], None]:
        """Register `listener` for `table`; returns the matching unsubscribe."""
        with self._lock:
            self._listeners[table].append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners.get(table, []):
                    self._listeners[table].remove(listener)

        return unsubscribe

    def publish(self, table: str) -> None:
        with self._lock:
            listeners = list(self._listeners.get(table, []))
        for listener in listeners:
            try:
                listener(table)
            except Exception:
                logger.exception("change feed listener failed for table %s", table)

    def listener_count(self, table: str) -> int:
        with self._lock:
            return len(self._listeners.get(table, []))

    # --- SQLAlchemy session hooks ---------------------------------------------

    def _remember(self, session: Session, tables) -> None:
        session.info.setdefault(_PENDING_KEY, set()).update(tables)

    def _after_flush(self, session: Session, flush_context) -> None:
        tables = {
            obj.__table__.name
            for obj in (*session.new, *session.dirty, *session.deleted)
            if hasattr(obj, "__table__")
        }
        self._remember(session, tables)

    def _do_orm_execute(self, orm_execute_state) -> None:
        # Bulk update()/delete() statements bypass the flush.
        if not (orm_execute_state.is_update or orm_execute_state.is_delete or orm_execute_state.is_insert):
            return
        mapper = orm_execute_state.bind_mapper
        if mapper is not None:
            self._remember(orm_execute_state.session, {mapper.local_table.name})

    def _after_commit(self, session: Session) -> None:
        tables = session.info.pop(_PENDING_KEY, set())
        for table in sorted(tables):
            self.publish(table)

    def _after_soft_rollback(self, session: Session, previous_transaction) -> None:
        session.info.pop(_PENDING_KEY, None)

    def bind(self, target=Session) -> None:
        """Attach the hooks to a Session class or sessionmaker."""
        hooks = [
            ("after_flush", self._after_flush),
            ("do_orm_execute", self._do_orm_execute),
            ("after_commit", self._after_commit),
            ("after_soft_rollback", self._after_soft_rollback),
        ]
        for name, fn in hooks:
            event.listen(target, name, fn)
            self._bound.append((target, name, fn))
        logger.debug("change feed bound to %r", target)

    def unbind(self) -> None:
        for target, name, fn in self._bound:
            event.remove(target, name, fn)
        self._bound.clear()
