# app/models/order.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any, List, Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.utils.time import utc_now

if TYPE_CHECKING:
    from app.models.order_item import OrderItem
    from app.models.payment import Payment
    from app.models.shipment import Shipment


def new_id() -> str:
    return str(uuid.uuid4())


class Order(Base):
    """
    Order header.

    - money columns are integer minor units (subtotal/discount/tax/shipping/total)
    - shipping_address is a JSON snapshot taken at creation
    - status values: app.models.enums.OrderStatus
    """

    __tablename__ = "orders"
    __table_args__ = (
        sa.Index("ix_orders_user_status", "user_id", "status"),
        sa.CheckConstraint("total_cents >= 0", name="total_non_negative"),
    )

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        sa.String(64), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )
    status: Mapped[str] = mapped_column(sa.String(16), nullable=False, index=True)

    subtotal_cents: Mapped[int] = mapped_column(sa.BigInteger, nullable=False, default=0)
    discount_cents: Mapped[int] = mapped_column(sa.BigInteger, nullable=False, default=0)
    tax_cents: Mapped[int] = mapped_column(sa.BigInteger, nullable=False, default=0)
    shipping_cents: Mapped[int] = mapped_column(sa.BigInteger, nullable=False, default=0)
    total_cents: Mapped[int] = mapped_column(sa.BigInteger, nullable=False, default=0)
    currency: Mapped[str] = mapped_column(sa.String(8), nullable=False, default="IDR")

    coupon_code: Mapped[Optional[str]] = mapped_column(sa.String(64), nullable=True, index=True)
    shipping_address: Mapped[Optional[dict[str, Any]]] = mapped_column(sa.JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    items: Mapped[List["OrderItem"]] = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="OrderItem.id",
    )
    payment: Mapped[Optional["Payment"]] = relationship(
        "Payment", back_populates="order", uselist=False, lazy="selectin"
    )
    shipment: Mapped[Optional["Shipment"]] = relationship(
        "Shipment", back_populates="order", uselist=False, lazy="selectin"
    )

    def __repr__(self) -> str:
        return f"<Order id={self.id!r} user={self.user_id!r} status={self.status}>"
