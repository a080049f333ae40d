"""
Privileged user lifecycle schemas. Success bodies carry `success: true`.
"""
from typing import Optional

from pydantic import BaseModel


class UserCreate(BaseModel):
    # Presence is checked by the service so a missing field is a 400.
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None
    role: Optional[str] = None
    group_id: Optional[int] = None


class UserOut(BaseModel):
    id: int
    email: str
    name: str
    role: str
    group_id: Optional[int] = None


class UserCreateResponse(BaseModel):
    success: bool = True
    user: UserOut


class GroupDeleteResponse(BaseModel):
    success: bool = True
    deleted_users: int
