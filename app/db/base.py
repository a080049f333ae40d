"""
Database engine, session factory and the declarative Base.

Postgres in production; tests swap the session factory for in-memory SQLite
through the `get_db` dependency override.
"""
from __future__ import annotations

import logging
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from app.core.config import settings
from app.core.errors import StoreError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


# Hosting platforms inject postgres:// but SQLAlchemy 2.x requires postgresql://
_url = settings.DATABASE_URL.replace("postgres://", "postgresql://", 1)

if _url.startswith("sqlite"):
    engine = create_engine(_url, connect_args={"check_same_thread": False})
else:
    engine = create_engine(_url, pool_pre_ping=True, pool_size=5, max_overflow=10)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def commit_or_raise(db: Session, operation: str) -> None:
    """Commit the unit of work; roll back and raise StoreError on failure."""
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Store write failed during %s: %s", operation, exc)
        raise StoreError(str(exc.__cause__ or exc), operation=operation) from exc
