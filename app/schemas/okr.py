from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.okr import OKRStatus, OKRType


class OKRCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=256)
    description: Optional[str] = None
    type: OKRType = OKRType.annual
    target_value: Optional[Decimal] = None
    current_value: Optional[Decimal] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    created_by: Optional[int] = None


class OKRUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=256)
    description: Optional[str] = None
    target_value: Optional[Decimal] = None
    current_value: Optional[Decimal] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[OKRStatus] = None


class OKROut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: Optional[str] = None
    type: str
    target_value: Optional[Decimal] = None
    current_value: Optional[Decimal] = None
    progress: int = 0
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: str
    created_by: Optional[int] = None
    created_at: datetime


class ArchiveWeeklyResponse(BaseModel):
    archived: int
