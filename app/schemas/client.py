"""
Client schemas.

POST /clients                          ClientCreate        -> ClientOut
PUT  /clients/{id}/label               LabelUpdate         -> LabelUpdateResponse
PUT  /clients/{id}/classification      ClassificationUpdate -> ClientOut
POST /clients/{id}/churn                                   -> ChurnResponse
PUT  /clients/{id}/products/{slug}     ProductValueUpdate  -> ProductValueOut
GET/PUT /clients/{id}/contract         ContractUpdate      -> ContractOut
GET  /clients/{id}/onboarding                              -> OnboardingOut
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.client import ClientLabel, ClientStatus, CSClassification
from app.schemas.task import TaskOut


class ClientCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=256)
    assigned_ads_manager: Optional[int] = None
    assigned_comercial: Optional[int] = None
    monthly_value: Optional[Decimal] = Field(default=None, ge=0)
    status: ClientStatus = ClientStatus.onboarding


class ClientOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    client_label: Optional[str] = None
    cs_classification: str
    cs_classification_reason: Optional[str] = None
    last_cs_contact_at: Optional[datetime] = None
    status: str
    archived: bool
    archived_at: Optional[datetime] = None
    assigned_ads_manager: Optional[int] = None
    assigned_comercial: Optional[int] = None
    monthly_value: Optional[Decimal] = None


class LabelUpdate(BaseModel):
    label: Optional[ClientLabel] = Field(
        default=None,
        description="New label. `null` clears the label and leaves the classification as is.",
    )


class LabelUpdateResponse(BaseModel):
    client: ClientOut
    reset: bool = Field(description="True when the label moved the client back to `normal`.")


class ClassificationUpdate(BaseModel):
    classification: CSClassification
    reason: Optional[str] = None


class ChurnResponse(BaseModel):
    client: ClientOut
    analysis_task: Optional[TaskOut] = None


class ProductValueUpdate(BaseModel):
    monthly_value: Decimal = Field(..., ge=0)


class ProductValueOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    client_id: int
    product_slug: str
    monthly_value: Decimal


class ContractUpdate(BaseModel):
    signed_at: Optional[date] = None
    expires_at: Optional[date] = None


class ContractOut(BaseModel):
    client_id: int
    status: str = Field(description="not_signed | signed | expiring | expired")
    days_until_expiration: Optional[int] = None
    signed_at: Optional[date] = None
    expires_at: Optional[date] = None


class MilestoneOut(BaseModel):
    milestone: int
    progress: int
    completed: bool
    tasks: list[TaskOut]


class OnboardingOut(BaseModel):
    client_id: int
    progress: int
    current_step: Optional[str] = None
    milestones: list[MilestoneOut]
