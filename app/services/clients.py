"""
Client service: intake, CS contact events, churn, per-product values.

Label and classification writes live in app/services/classification.py.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from app.core.errors import NotFoundError, ValidationError
from app.db.base import commit_or_raise
from app.models.client import Client, ClientStatus, CSClassification
from app.models.product_value import ClientProductValue
from app.models.task import Task, TaskKind, TaskPriority, TaskStatus
from app.services.delay_tracker import as_utc, civil_date

logger = logging.getLogger(__name__)


def get_client(db: Session, client_id: int) -> Client:
    client = db.get(Client, client_id)
    if client is None:
        raise NotFoundError("Client", client_id)
    return client


def create_client(
    db: Session,
    name: str,
    assigned_ads_manager: Optional[int] = None,
    assigned_comercial: Optional[int] = None,
    monthly_value: Optional[Decimal] = None,
    status: str = ClientStatus.onboarding.value,
) -> Client:
    if not name or not name.strip():
        raise ValidationError("Client name is required.", field="name")
    client = Client(
        name=name.strip(),
        assigned_ads_manager=assigned_ads_manager,
        assigned_comercial=assigned_comercial,
        monthly_value=monthly_value,
        status=status,
        cs_classification=CSClassification.normal,
        archived=False,
    )
    db.add(client)
    commit_or_raise(db, "create_client")
    db.refresh(client)
    logger.info("client %s created (%s)", client.id, client.name)
    return client


def register_contact(db: Session, client_id: int, now: datetime) -> Client:
    """Record a CS contact with the client at `now`."""
    client = get_client(db, client_id)
    client.last_cs_contact_at = as_utc(now)
    commit_or_raise(db, "register_contact")
    db.refresh(client)
    return client


def churn_client(db: Session, client_id: int, now: datetime) -> tuple[Client, Optional[Task]]:
    """
    Soft-delete a client as churned and open a churn-analysis task for its
    ads manager, due the next day. Both writes share one commit.
    """
    client = get_client(db, client_id)
    if client.status == ClientStatus.churned and client.archived:
        raise ValidationError(f"Client {client_id} is already churned.")

    client.status = ClientStatus.churned
    client.archived = True
    client.archived_at = as_utc(now)
    client.cs_classification = CSClassification.encerrado
    client.cs_classification_reason = "Client churned"

    task = None
    if client.assigned_ads_manager is not None:
        task = Task(
            kind=TaskKind.department,
            title=f"Schedule churn analysis meeting - {client.name}",
            description=f"Schedule and hold a meeting to analyse why {client.name} churned.",
            assignee_id=client.assigned_ads_manager,
            related_client_id=client.id,
            status=TaskStatus.todo,
            priority=TaskPriority.high,
            due_date=civil_date(now) + timedelta(days=1),
            archived=False,
        )
        db.add(task)

    commit_or_raise(db, "churn_client")
    db.refresh(client)
    if task is not None:
        db.refresh(task)
    logger.info("client %s churned", client_id)
    return client, task


def upsert_product_value(
    db: Session,
    client_id: int,
    product_slug: str,
    monthly_value: Decimal,
) -> ClientProductValue:
    """Insert or refresh the (client_id, product_slug) row."""
    get_client(db, client_id)
    slug = product_slug.strip().lower()
    if not slug:
        raise ValidationError("Product slug is required.", field="product_slug")
    if monthly_value < 0:
        raise ValidationError("Monthly value must not be negative.", field="monthly_value")

    existing = (
        db.query(ClientProductValue)
        .filter(
            ClientProductValue.client_id == client_id,
            ClientProductValue.product_slug == slug,
        )
        .first()
    )
    if existing is not None:
        existing.monthly_value = monthly_value
        row = existing
    else:
        row = ClientProductValue(
            client_id=client_id,
            product_slug=slug,
            monthly_value=monthly_value,
        )
        db.add(row)
    commit_or_raise(db, "upsert_product_value")
    db.refresh(row)
    return row


def list_product_values(db: Session, client_id: int) -> list[ClientProductValue]:
    return (
        db.query(ClientProductValue)
        .filter(ClientProductValue.client_id == client_id)
        .order_by(ClientProductValue.product_slug.asc())
        .all()
    )
