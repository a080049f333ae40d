"""
Privileged user lifecycle: create/delete users and delete groups.

Every operation resolves the caller from its bearer token, requires the CEO
role, and commits once. A rejected call leaves the store untouched.
"""
from __future__ import annotations

import logging
import secrets
from typing import Optional

from passlib.context import CryptContext
from sqlalchemy.orm import Session

from app.core.errors import (
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    ValidationError,
)
from app.db.base import commit_or_raise
from app.models.profile import OrganizationGroup, Profile

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def new_api_token() -> str:
    return secrets.token_urlsafe(32)


# ---------------------------------------------------------------------------
# Caller resolution
# ---------------------------------------------------------------------------

def authenticate(db: Session, authorization: Optional[str]) -> Profile:
    """Resolve `Authorization: Bearer <token>` to a profile, or raise 401."""
    if not authorization:
        raise AuthenticationError()
    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise AuthenticationError()
    caller = db.query(Profile).filter(Profile.api_token == token).first()
    if caller is None:
        raise AuthenticationError()
    return caller


def require_ceo(caller: Profile, action: str) -> None:
    if not caller.is_ceo:
        logger.warning("user %s tried to %s without the CEO role", caller.id, action)
        raise AuthorizationError(f"Only the CEO can {action}.")


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

def create_user(
    db: Session,
    caller: Profile,
    email: Optional[str],
    password: Optional[str],
    name: Optional[str],
    role: Optional[str],
    group_id: Optional[int] = None,
) -> Profile:
    require_ceo(caller, "create users")
    if not all(v and str(v).strip() for v in (email, password, name, role)):
        raise ValidationError("Email, password, name and role are required.")

    email = email.strip().lower()
    if db.query(Profile).filter(Profile.email == email).first() is not None:
        raise ValidationError(f"A user with email {email} already exists.", field="email")
    if group_id is not None and db.get(OrganizationGroup, group_id) is None:
        raise NotFoundError("Group", group_id)

    profile = Profile(
        name=name.strip(),
        email=email,
        role=role.strip(),
        group_id=group_id,
        password_hash=hash_password(password),
        api_token=new_api_token(),
    )
    db.add(profile)
    commit_or_raise(db, "create_user")
    db.refresh(profile)
    logger.info("user %s (%s) created by %s", profile.id, profile.role, caller.id)
    return profile


def delete_user(db: Session, caller: Profile, user_id: Optional[int]) -> None:
    require_ceo(caller, "delete users")
    if not user_id:
        raise ValidationError("User id is required.", field="user_id")
    target = db.get(Profile, user_id)
    if target is None:
        raise NotFoundError("User", user_id)
    if target.is_ceo:
        raise AuthorizationError("The CEO account cannot be deleted.")

    db.delete(target)
    commit_or_raise(db, "delete_user")
    logger.info("user %s deleted by %s", user_id, caller.id)


def delete_group(
    db: Session,
    caller: Profile,
    group_id: Optional[int],
    delete_users: bool = False,
) -> int:
    """
    Delete a group. With `delete_users`, its members go too (the CEO is
    always kept and just leaves the group). Returns the deleted user count.
    """
    require_ceo(caller, "delete groups")
    if not group_id:
        raise ValidationError("Group id is required.", field="group_id")
    group = db.get(OrganizationGroup, group_id)
    if group is None:
        raise NotFoundError("Group", group_id)

    members = db.query(Profile).filter(Profile.group_id == group_id).all()
    deleted = 0
    for member in members:
        if delete_users and not member.is_ceo:
            db.delete(member)
            deleted += 1
        else:
            member.group_id = None
    db.delete(group)
    commit_or_raise(db, "delete_group")
    logger.info("group %s deleted by %s (%d users removed)", group_id, caller.id, deleted)
    return deleted
