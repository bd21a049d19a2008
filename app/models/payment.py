# app/models/payment.py
from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.order import new_id
from app.utils.time import utc_now

if TYPE_CHECKING:
    from app.models.order import Order


class Payment(Base):
    """
    One payment attempt per order. Only reconciliation writes `status` and
    `paid_at`, always via a compare-and-set on status = 'pending'.
    """

    __tablename__ = "payments"

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=new_id)
    order_id: Mapped[str] = mapped_column(
        sa.String(36), sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    provider: Mapped[str] = mapped_column(sa.String(32), nullable=False)
    # Snap token handed to the buyer; NULL while no gateway transaction was created
    payment_token: Mapped[Optional[str]] = mapped_column(sa.String(255), nullable=True)
    gateway_transaction_id: Mapped[Optional[str]] = mapped_column(sa.String(64), nullable=True)
    status: Mapped[str] = mapped_column(sa.String(16), nullable=False, index=True)
    amount_cents: Mapped[int] = mapped_column(sa.BigInteger, nullable=False)
    currency: Mapped[str] = mapped_column(sa.String(8), nullable=False, default="IDR")
    paid_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    order: Mapped["Order"] = relationship("Order", back_populates="payment")

    def __repr__(self) -> str:
        return f"<Payment order={self.order_id!r} status={self.status} amount={self.amount_cents}>"
