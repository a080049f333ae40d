from datetime import datetime
from decimal import Decimal
import enum

from sqlalchemy import Integer, String, Text, Boolean, DateTime, Numeric, Enum, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class ClientLabel(str, enum.Enum):
    otimo = "otimo"
    bom = "bom"
    medio = "medio"
    ruim = "ruim"


class CSClassification(str, enum.Enum):
    normal = "normal"
    alerta = "alerta"
    critico = "critico"
    encerrado = "encerrado"


class ClientStatus(str, enum.Enum):
    active = "active"
    onboarding = "onboarding"
    paused = "paused"
    churned = "churned"


class Client(Base):
    """A client account. Soft-deleted through `archived`, never hard-deleted."""

    __tablename__ = "clients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    # Free text: canonical ClientLabel values, NULL, or legacy colour tokens.
    client_label: Mapped[str | None] = mapped_column(String(32), nullable=True)
    cs_classification: Mapped[str] = mapped_column(
        Enum(CSClassification, name="cs_classification_enum"),
        nullable=False,
        default=CSClassification.normal,
    )
    cs_classification_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_cs_contact_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(
        Enum(ClientStatus, name="client_status_enum"),
        nullable=False,
        default=ClientStatus.active,
    )
    archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    archived_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    assigned_ads_manager: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    assigned_comercial: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    monthly_value: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
