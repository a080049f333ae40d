"""
Contract badge for a client.

  not_signed  no contract row, or signed_at is empty
  signed      no expiry date, or more than the warning window away
  expiring    0..CONTRACT_EXPIRATION_WARNING_DAYS days left
  expired     expiry date already passed
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import ValidationError
from app.db.base import commit_or_raise
from app.models.contract import ClientContract
from app.services.clients import get_client


class ContractStatus(str, enum.Enum):
    not_signed = "not_signed"
    signed = "signed"
    expiring = "expiring"
    expired = "expired"


@dataclass(frozen=True)
class ContractBadge:
    status: ContractStatus
    days_until_expiration: Optional[int] = None


def contract_status(
    contract: Optional[ClientContract],
    today: date,
    warning_days: Optional[int] = None,
) -> ContractBadge:
    if warning_days is None:
        warning_days = settings.CONTRACT_EXPIRATION_WARNING_DAYS
    if contract is None or contract.signed_at is None:
        return ContractBadge(ContractStatus.not_signed)
    if contract.expires_at is None:
        return ContractBadge(ContractStatus.signed)

    days = (contract.expires_at - today).days
    if days < 0:
        return ContractBadge(ContractStatus.expired, days)
    if days <= warning_days:
        return ContractBadge(ContractStatus.expiring, days)
    return ContractBadge(ContractStatus.signed, days)


def get_contract(db: Session, client_id: int) -> Optional[ClientContract]:
    return db.query(ClientContract).filter(ClientContract.client_id == client_id).first()


def get_contract_badge(db: Session, client_id: int, today: date) -> ContractBadge:
    get_client(db, client_id)
    return contract_status(get_contract(db, client_id), today)


def upsert_contract(
    db: Session,
    client_id: int,
    signed_at: Optional[date],
    expires_at: Optional[date],
) -> ClientContract:
    get_client(db, client_id)
    if signed_at and expires_at and expires_at < signed_at:
        raise ValidationError("Contract cannot expire before it is signed.", field="expires_at")

    contract = get_contract(db, client_id)
    if contract is None:
        contract = ClientContract(client_id=client_id)
        db.add(contract)
    contract.signed_at = signed_at
    contract.expires_at = expires_at
    commit_or_raise(db, "upsert_contract")
    db.refresh(contract)
    return contract
