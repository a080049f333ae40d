from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from app.models.tracking import WeekDay


class TrackingCreate(BaseModel):
    client_id: int
    manager_id: int
    day: WeekDay = WeekDay.segunda


class TrackingMove(BaseModel):
    day: WeekDay


class TrackingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    client_id: int
    manager_id: int
    current_day: str
    last_moved_at: Optional[datetime] = None
    is_delayed: bool
    justification: Optional[str] = None
    justification_at: Optional[datetime] = None
