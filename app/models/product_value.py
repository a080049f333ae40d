from datetime import datetime
from decimal import Decimal

from sqlalchemy import Integer, String, DateTime, Numeric, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class ClientProductValue(Base):
    """Monthly value a client pays for one product. Upserted by (client, slug)."""

    __tablename__ = "client_product_values"
    __table_args__ = (
        UniqueConstraint("client_id", "product_slug", name="uq_client_product_slug"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    client_id: Mapped[int] = mapped_column(ForeignKey("clients.id"), nullable=False, index=True)
    product_slug: Mapped[str] = mapped_column(String(64), nullable=False)
    monthly_value: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
