"""
Justification session schemas.

POST /justification/sessions                  SessionStart -> SessionOut
GET  /justification/sessions/{sid}                         -> SessionOut
POST /justification/sessions/{sid}/submit     SubmitRequest -> SessionOut
POST /justification/sessions/{sid}/dismiss                  -> SessionOut
"""
from datetime import date
from typing import Optional

from pydantic import BaseModel, Field


class SessionStart(BaseModel):
    user_id: int


class PendingItemOut(BaseModel):
    key: str = Field(description='"task:<id>" or "tracking:<id>"', examples=["task:12"])
    kind: str
    id: int
    title: str
    due: Optional[date] = Field(default=None, description="Null for a card that was never moved.")
    owner_id: Optional[int] = None
    client_id: Optional[int] = None


class SessionOut(BaseModel):
    session_id: str
    user_id: int
    state: str = Field(description="idle | showing | dismissed | justified")
    current: Optional[PendingItemOut] = None
    pending_count: int
    pending: list[PendingItemOut]


class SubmitRequest(BaseModel):
    item_key: str = Field(..., examples=["tracking:3"])
    # Blank text is a business-rule failure (400), not a schema one.
    justification: Optional[str] = None
