from datetime import datetime, date
from decimal import Decimal
import enum

from sqlalchemy import Integer, String, Text, DateTime, Date, Numeric, Enum, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class OKRType(str, enum.Enum):
    annual = "annual"
    weekly = "weekly"


class OKRStatus(str, enum.Enum):
    active = "active"
    completed = "completed"
    archived = "archived"


class OKR(Base):
    __tablename__ = "okrs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(
        Enum(OKRType, name="okr_type_enum"),
        nullable=False,
        default=OKRType.annual,
        index=True,
    )
    target_value: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    current_value: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(
        Enum(OKRStatus, name="okr_status_enum"),
        nullable=False,
        default=OKRStatus.active,
        index=True,
    )
    created_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
