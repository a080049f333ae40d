"""
Tests for the justification workflow state machine and submit path.
"""
from __future__ import annotations

import threading
from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace as NS
from zoneinfo import ZoneInfo

import pytest

from app.core.errors import NotFoundError, StaleItemError, ValidationError
from app.models.task import Task
from app.models.tracking import ClientDailyTracking
from app.services import justification as justification_service
from app.services.change_feed import ChangeFeed
from app.services.delay_tracker import PendingActionMonitor, PendingItem
from app.services.justification import (
    JustificationSession,
    SessionRegistry,
    SessionState,
    Viewer,
    submit_justification,
)

SP = ZoneInfo("America/Sao_Paulo")
NOW = datetime(2024, 3, 10, 15, 0, tzinfo=SP)
DELAY = timedelta(milliseconds=500)


def _item(item_id, due, kind="task"):
    return PendingItem(kind=kind, id=item_id, title=f"item {item_id}", due=due, owner_id=1)


def _bare_session(advance_delay=DELAY):
    monitor = PendingActionMonitor(lambda db, now: [], time_zone=SP)
    return JustificationSession("s1", Viewer(id=1, role="gestor_ads"), monitor, advance_delay)


# ---------------------------------------------------------------------------
# State machine (no store)
# ---------------------------------------------------------------------------

class TestStateMachine:
    A = _item(1, date(2024, 3, 1))
    B = _item(2, date(2024, 3, 2))

    def test_idle_to_showing_first(self):
        session = _bare_session()
        assert session.state == SessionState.idle
        session.sync([self.A, self.B], NOW)
        assert session.state == SessionState.showing
        assert session.current == self.A

    def test_empty_set_goes_idle(self):
        session = _bare_session()
        session.sync([self.A], NOW)
        session.sync([], NOW)
        assert session.state == SessionState.idle
        assert session.current is None

    def test_shown_item_dropped_moves_to_next(self):
        session = _bare_session()
        session.sync([self.A, self.B], NOW)
        session.sync([self.B], NOW)
        assert session.state == SessionState.showing
        assert session.current == self.B

    def test_dismiss_waits_for_advance_delay(self):
        session = _bare_session()
        session.sync([self.A, self.B], NOW)
        session.dismiss(NOW)
        assert session.state == SessionState.dismissed

        session.sync([self.A, self.B], NOW + timedelta(milliseconds=100))
        assert session.state == SessionState.dismissed

        session.sync([self.A, self.B], NOW + DELAY)
        assert session.state == SessionState.showing
        assert session.current == self.B

    def test_dismiss_all_goes_idle(self):
        session = _bare_session()
        session.sync([self.A], NOW)
        session.dismiss(NOW)
        session.sync([self.A], NOW + timedelta(seconds=1))
        assert session.state == SessionState.idle

    def test_dismiss_requires_shown_item(self):
        session = _bare_session()
        with pytest.raises(ValidationError):
            session.dismiss(NOW)

    def test_dismissal_is_session_scoped(self):
        first = _bare_session()
        first.sync([self.A], NOW)
        first.dismiss(NOW)

        second = _bare_session()
        second.sync([self.A], NOW)
        assert second.current == self.A

    def test_mark_justified_requires_the_shown_item(self):
        session = _bare_session()
        session.sync([self.A, self.B], NOW)
        with pytest.raises(StaleItemError):
            session.mark_justified(self.B.key, NOW)
        assert session.state == SessionState.showing
        assert session.current == self.A

    def test_zero_advance_delay_rejected(self):
        with pytest.raises(ValueError):
            _bare_session(advance_delay=timedelta(0))


# ---------------------------------------------------------------------------
# Submit against the store
# ---------------------------------------------------------------------------

@pytest.fixture()
def scenario(db, make_profile, make_client, make_task, make_tracking):
    ana = make_profile("Ana")
    client = make_client("Cliente Um", manager_id=ana.id)
    task = make_task("Relatorio semanal", date(2024, 3, 1), assignee_id=ana.id)
    record = make_tracking(client.id, ana.id, last_moved_at=NOW - timedelta(days=1))
    registry = SessionRegistry(advance_delay=DELAY, time_zone=SP)
    return NS(ana=ana, task=task, record=record, registry=registry)


def _start(scenario, db, now=NOW):
    session = scenario.registry.start(Viewer(id=scenario.ana.id, role=scenario.ana.role))
    session.refresh(db, now)
    return session


class TestSubmitJustification:
    def test_empty_text_keeps_showing(self, db, scenario):
        session = _start(scenario, db)
        key = f"task:{scenario.task.id}"
        assert session.current.key == key

        for text in ("", "   ", None):
            with pytest.raises(ValidationError):
                submit_justification(db, session, key, text, NOW, SP)
            assert session.state == SessionState.showing
            assert session.current.key == key

        db.refresh(scenario.task)
        assert scenario.task.justification is None

    def test_valid_text_persists_and_advances(self, db, scenario):
        session = _start(scenario, db)
        key = f"task:{scenario.task.id}"

        submit_justification(db, session, key, "  Cliente pediu adiamento ", NOW, SP)
        assert session.state == SessionState.justified

        task = db.get(Task, scenario.task.id)
        db.refresh(task)
        assert task.justification == "Cliente pediu adiamento"
        stored = task.justification_at.replace(tzinfo=timezone.utc)
        assert stored == NOW.astimezone(timezone.utc)

        session.refresh(db, NOW + timedelta(milliseconds=100))
        assert session.state == SessionState.justified

        session.refresh(db, NOW + timedelta(seconds=1))
        assert session.state == SessionState.showing
        assert session.current.key == f"tracking:{scenario.record.id}"

    def test_tracking_justification(self, db, scenario):
        session = _start(scenario, db)
        session.dismiss(NOW)
        session.refresh(db, NOW + timedelta(seconds=1))
        key = f"tracking:{scenario.record.id}"
        assert session.current.key == key

        submit_justification(db, session, key, "Sem acesso a conta", NOW + timedelta(seconds=2), SP)
        record = db.get(ClientDailyTracking, scenario.record.id)
        db.refresh(record)
        assert record.justification == "Sem acesso a conta"
        assert record.justification_at is not None

    def test_submit_for_item_not_shown_is_stale(self, db, scenario):
        session = _start(scenario, db)
        with pytest.raises(StaleItemError):
            submit_justification(db, session, f"tracking:{scenario.record.id}", "texto", NOW, SP)
        # still showing the first item after the forced recompute
        assert session.current.key == f"task:{scenario.task.id}"

    def test_item_justified_elsewhere_is_stale(self, db, scenario):
        first = _start(scenario, db)
        second = _start(scenario, db)
        key = f"task:{scenario.task.id}"
        assert second.current.key == key

        submit_justification(db, first, key, "Resolvido pelo time", NOW, SP)

        with pytest.raises(StaleItemError) as exc:
            submit_justification(db, second, key, "Outra explicacao", NOW, SP)
        assert exc.value.details["item_key"] == key
        # recomputed: the stale item was dropped for the next pending one
        assert second.current.key == f"tracking:{scenario.record.id}"

        task = db.get(Task, scenario.task.id)
        db.refresh(task)
        assert task.justification == "Resolvido pelo time"

    def test_concurrent_poll_cannot_swap_the_shown_item(self, db, scenario, monkeypatch):
        session = _start(scenario, db)
        task_key = f"task:{scenario.task.id}"
        tracking_item = session.pending[1]
        poller = threading.Thread(target=session.sync, args=([tracking_item], NOW))
        blocked = []
        real_is_item_pending = justification_service.is_item_pending

        def poll_during_submit(db_, key, now, tz):
            poller.start()
            poller.join(timeout=0.2)
            blocked.append(poller.is_alive())
            return real_is_item_pending(db_, key, now, tz)

        monkeypatch.setattr(justification_service, "is_item_pending", poll_during_submit)
        item = submit_justification(db, session, task_key, "Cliente viajou", NOW, SP)
        poller.join(timeout=2)

        assert blocked == [True]
        assert item.key == task_key
        assert session.state == SessionState.justified
        assert task_key in session._handled
        assert tracking_item.key not in session._handled
        task = db.get(Task, scenario.task.id)
        db.refresh(task)
        assert task.justification == "Cliente viajou"

    def test_malformed_key(self, db, scenario):
        session = _start(scenario, db)
        with pytest.raises(ValidationError):
            submit_justification(db, session, "invoice:1", "texto", NOW, SP)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class TestSessionRegistry:
    def test_start_get_end(self):
        registry = SessionRegistry(advance_delay=DELAY, time_zone=SP)
        session = registry.start(Viewer(id=1, role="gestor_ads"))
        assert registry.get(session.session_id) is session
        assert len(registry) == 1
        registry.end(session.session_id)
        assert len(registry) == 0
        with pytest.raises(NotFoundError):
            registry.get(session.session_id)

    def test_monitors_follow_the_change_feed(self):
        feed = ChangeFeed()
        registry = SessionRegistry(feed=feed, advance_delay=DELAY, time_zone=SP)
        session = registry.start(Viewer(id=1, role="gestor_ads"))
        assert feed.listener_count("tasks") == 1
        assert feed.listener_count("client_daily_tracking") == 1

        session.monitor._compute = lambda db, now: []
        session.monitor.snapshot(None, NOW)
        assert session.monitor.needs_refresh(NOW) is False
        feed.publish("tasks")
        assert session.monitor.needs_refresh(NOW) is True

        registry.close()
        assert feed.listener_count("tasks") == 0
