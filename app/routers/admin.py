"""
Privileged user lifecycle router (CEO only).

POST   /admin/users
DELETE /admin/users/{user_id}
DELETE /admin/groups/{group_id}?delete_users=

Caller identity comes from `Authorization: Bearer <api_token>`.
401 missing/unknown token, 403 not CEO or target is the CEO, 400 missing fields.
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, status
from sqlalchemy.orm import Session

from app.db.base import get_db
from app.models.profile import Profile
from app.schemas.admin import GroupDeleteResponse, UserCreate, UserCreateResponse, UserOut
from app.schemas.common import ErrorResponse, SuccessResponse
from app.services import admin as admin_service

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
    },
)


def get_caller(
    authorization: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> Profile:
    return admin_service.authenticate(db, authorization)


@router.post(
    "/users",
    response_model=UserCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user",
)
def create_user(
    payload: UserCreate,
    caller: Profile = Depends(get_caller),
    db: Session = Depends(get_db),
):
    profile = admin_service.create_user(
        db,
        caller,
        email=payload.email,
        password=payload.password,
        name=payload.name,
        role=payload.role,
        group_id=payload.group_id,
    )
    return UserCreateResponse(
        user=UserOut(
            id=profile.id,
            email=profile.email,
            name=profile.name,
            role=profile.role,
            group_id=profile.group_id,
        )
    )


@router.delete("/users/{user_id}", response_model=SuccessResponse, summary="Delete a user")
def delete_user(
    user_id: int,
    caller: Profile = Depends(get_caller),
    db: Session = Depends(get_db),
):
    admin_service.delete_user(db, caller, user_id)
    return SuccessResponse()


@router.delete(
    "/groups/{group_id}",
    response_model=GroupDeleteResponse,
    summary="Delete a group, optionally with its users",
)
def delete_group(
    group_id: int,
    delete_users: bool = Query(default=False),
    caller: Profile = Depends(get_caller),
    db: Session = Depends(get_db),
):
    deleted = admin_service.delete_group(db, caller, group_id, delete_users)
    return GroupDeleteResponse(deleted_users=deleted)
