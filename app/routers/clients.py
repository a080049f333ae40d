"""
Clients router.

POST /clients
GET  /clients/{client_id}
PUT  /clients/{client_id}/label
PUT  /clients/{client_id}/classification
POST /clients/{client_id}/contact
POST /clients/{client_id}/churn
PUT  /clients/{client_id}/products/{product_slug}
GET  /clients/{client_id}/contract
PUT  /clients/{client_id}/contract
GET  /clients/{client_id}/onboarding
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.db.base import get_db
from app.schemas.client import (
    ChurnResponse,
    ClassificationUpdate,
    ClientCreate,
    ClientOut,
    ContractOut,
    ContractUpdate,
    LabelUpdate,
    LabelUpdateResponse,
    MilestoneOut,
    OnboardingOut,
    ProductValueOut,
    ProductValueUpdate,
)
from app.schemas.common import ERROR_RESPONSES
from app.schemas.task import TaskOut
from app.services import clients as client_service
from app.services import contracts as contract_service
from app.services.classification import set_cs_classification, update_client_label
from app.services.delay_tracker import civil_date, utc_now
from app.services.onboarding import client_onboarding

router = APIRouter(prefix="/clients", tags=["clients"], responses=ERROR_RESPONSES)


@router.post(
    "",
    response_model=ClientOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a client",
)
def create_client(payload: ClientCreate, db: Session = Depends(get_db)):
    return client_service.create_client(
        db,
        name=payload.name,
        assigned_ads_manager=payload.assigned_ads_manager,
        assigned_comercial=payload.assigned_comercial,
        monthly_value=payload.monthly_value,
        status=payload.status.value,
    )


@router.get("/{client_id}", response_model=ClientOut, summary="Read a client")
def read_client(client_id: int, db: Session = Depends(get_db)):
    return client_service.get_client(db, client_id)


@router.put(
    "/{client_id}/label",
    response_model=LabelUpdateResponse,
    summary="Change the client label and recompute its CS classification",
)
def change_label(client_id: int, payload: LabelUpdate, db: Session = Depends(get_db)):
    """
    | label          | cs_classification | reason                |
    |----------------|-------------------|-----------------------|
    | `medio`        | `alerta`          | mentions "Médio"      |
    | `ruim`         | `critico`         | mentions "Ruim"       |
    | `otimo`, `bom` | `normal`          | cleared               |
    | `null`         | unchanged         | unchanged             |
    """
    label = payload.label.value if payload.label is not None else None
    client, result = update_client_label(db, client_id, label)
    return LabelUpdateResponse(client=ClientOut.model_validate(client), reset=result.reset)


@router.put(
    "/{client_id}/classification",
    response_model=ClientOut,
    summary="Manually set the CS classification",
)
def change_classification(
    client_id: int, payload: ClassificationUpdate, db: Session = Depends(get_db)
):
    return set_cs_classification(db, client_id, payload.classification.value, payload.reason)


@router.post(
    "/{client_id}/contact",
    response_model=ClientOut,
    summary="Register a CS contact with the client",
)
def register_contact(
    client_id: int,
    now: Optional[datetime] = Query(default=None, description="Contact time. Defaults to now."),
    db: Session = Depends(get_db),
):
    return client_service.register_contact(db, client_id, utc_now(now))


@router.post(
    "/{client_id}/churn",
    response_model=ChurnResponse,
    summary="Mark the client as churned",
)
def churn(
    client_id: int,
    now: Optional[datetime] = Query(default=None),
    db: Session = Depends(get_db),
):
    """
    Archives the client with status `churned`, classification `encerrado`,
    and opens a high-priority churn-analysis task for its ads manager due
    the next day.
    """
    client, task = client_service.churn_client(db, client_id, utc_now(now))
    return ChurnResponse(
        client=ClientOut.model_validate(client),
        analysis_task=TaskOut.model_validate(task) if task is not None else None,
    )


@router.put(
    "/{client_id}/products/{product_slug}",
    response_model=ProductValueOut,
    summary="Upsert the monthly value of one product for a client",
)
def put_product_value(
    client_id: int,
    product_slug: str,
    payload: ProductValueUpdate,
    db: Session = Depends(get_db),
):
    return client_service.upsert_product_value(db, client_id, product_slug, payload.monthly_value)


def _contract_out(db: Session, client_id: int, today: date) -> ContractOut:
    contract = contract_service.get_contract(db, client_id)
    badge = contract_service.get_contract_badge(db, client_id, today)
    return ContractOut(
        client_id=client_id,
        status=badge.status.value,
        days_until_expiration=badge.days_until_expiration,
        signed_at=contract.signed_at if contract else None,
        expires_at=contract.expires_at if contract else None,
    )


@router.get("/{client_id}/contract", response_model=ContractOut, summary="Contract status badge")
def read_contract(
    client_id: int,
    today: Optional[date] = Query(default=None, description="Defaults to today's civil date."),
    db: Session = Depends(get_db),
):
    return _contract_out(db, client_id, today or civil_date(utc_now()))


@router.put("/{client_id}/contract", response_model=ContractOut, summary="Record contract dates")
def write_contract(
    client_id: int,
    payload: ContractUpdate,
    db: Session = Depends(get_db),
):
    contract_service.upsert_contract(db, client_id, payload.signed_at, payload.expires_at)
    return _contract_out(db, client_id, civil_date(utc_now()))


@router.get(
    "/{client_id}/onboarding",
    response_model=OnboardingOut,
    summary="Onboarding milestones and progress",
)
def read_onboarding(client_id: int, db: Session = Depends(get_db)):
    summary = client_onboarding(db, client_id)
    return OnboardingOut(
        client_id=summary["client_id"],
        progress=summary["progress"],
        current_step=summary["current_step"],
        milestones=[
            MilestoneOut(
                milestone=m["milestone"],
                progress=m["progress"],
                completed=m["completed"],
                tasks=[TaskOut.model_validate(t) for t in m["tasks"]],
            )
            for m in summary["milestones"]
        ],
    )
