from datetime import datetime
import enum

from sqlalchemy import Integer, Text, Boolean, DateTime, Enum, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class WeekDay(str, enum.Enum):
    segunda = "segunda"
    terca = "terca"
    quarta = "quarta"
    quinta = "quinta"
    sexta = "sexta"


class ClientDailyTracking(Base):
    """
    One row per (client, manager) on the weekly movement board.

    `last_moved_at` drives the "not moved today" check; `justification`
    explains the most recent missed day.
    """

    __tablename__ = "client_daily_tracking"
    __table_args__ = (
        UniqueConstraint("client_id", "manager_id", name="uq_tracking_client_manager"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    client_id: Mapped[int] = mapped_column(ForeignKey("clients.id"), nullable=False, index=True)
    manager_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    current_day: Mapped[str] = mapped_column(
        Enum(WeekDay, name="week_day_enum"),
        nullable=False,
        default=WeekDay.segunda,
    )
    last_moved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_delayed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    justification: Mapped[str | None] = mapped_column(Text, nullable=True)
    justification_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
