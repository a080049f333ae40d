"""
Shared pytest fixtures.

Every test gets a fresh in-memory SQLite database so no Postgres is required
and no test can see another test's rows.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import date, datetime, timezone
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app import models  # noqa: F401  registers every table on Base.metadata
from app.db.base import Base, get_db
from app.main import app
from app.models.client import Client, ClientStatus, CSClassification
from app.models.profile import Profile
from app.models.task import Task, TaskKind, TaskPriority, TaskStatus
from app.models.tracking import ClientDailyTracking, WeekDay


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Row factories (timestamps are stored as UTC, the way the services store them)
# ---------------------------------------------------------------------------

def _utc(moment: Optional[datetime]) -> Optional[datetime]:
    if moment is None or moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc)


@pytest.fixture()
def make_profile(db):
    def _make(name: str, role: str = "gestor_ads", api_token: Optional[str] = None, group_id=None) -> Profile:
        profile = Profile(
            name=name,
            email=f"{name.lower().replace(' ', '.')}@example.com",
            role=role,
            api_token=api_token,
            group_id=group_id,
        )
        db.add(profile)
        db.commit()
        db.refresh(profile)
        return profile
    return _make


@pytest.fixture()
def make_client(db):
    def _make(
        name: str = "Acme",
        manager_id: Optional[int] = None,
        label: Optional[str] = None,
        classification: str = CSClassification.normal.value,
        status: str = ClientStatus.active.value,
        archived: bool = False,
        archived_at: Optional[datetime] = None,
        last_cs_contact_at: Optional[datetime] = None,
    ) -> Client:
        row = Client(
            name=name,
            assigned_ads_manager=manager_id,
            client_label=label,
            cs_classification=CSClassification(classification),
            status=ClientStatus(status),
            archived=archived,
            archived_at=_utc(archived_at),
            last_cs_contact_at=_utc(last_cs_contact_at),
        )
        db.add(row)
        db.commit()
        db.refresh(row)
        return row
    return _make


@pytest.fixture()
def make_task(db):
    def _make(
        title: str = "Task",
        due_date: Optional[date] = None,
        assignee_id: Optional[int] = None,
        status: str = TaskStatus.todo.value,
        kind: str = TaskKind.ads.value,
        archived: bool = False,
        justification: Optional[str] = None,
        related_client_id: Optional[int] = None,
        milestone: Optional[int] = None,
        task_type: Optional[str] = None,
    ) -> Task:
        row = Task(
            kind=TaskKind(kind),
            title=title,
            due_date=due_date,
            assignee_id=assignee_id,
            status=TaskStatus(status),
            priority=TaskPriority.medium,
            archived=archived,
            justification=justification,
            related_client_id=related_client_id,
            milestone=milestone,
            task_type=task_type,
        )
        db.add(row)
        db.commit()
        db.refresh(row)
        return row
    return _make


@pytest.fixture()
def make_tracking(db):
    def _make(
        client_id: int,
        manager_id: int,
        last_moved_at: Optional[datetime] = None,
        justification: Optional[str] = None,
        justification_at: Optional[datetime] = None,
    ) -> ClientDailyTracking:
        row = ClientDailyTracking(
            client_id=client_id,
            manager_id=manager_id,
            current_day=WeekDay.segunda,
            last_moved_at=_utc(last_moved_at),
            is_delayed=False,
            justification=justification,
            justification_at=_utc(justification_at),
        )
        db.add(row)
        db.commit()
        db.refresh(row)
        return row
    return _make
