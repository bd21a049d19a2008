# app/models/order_item.py
from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base

if TYPE_CHECKING:
    from app.models.order import Order


class OrderItem(Base):
    """
    Order line. sku/title/unit price are snapshots; variant_id becomes NULL
    if the catalog row is deleted later.
    """

    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(
        sa.String(36), sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    variant_id: Mapped[Optional[str]] = mapped_column(
        sa.String(64),
        sa.ForeignKey("product_variants.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    sku: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    title: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    unit_price_cents: Mapped[int] = mapped_column(sa.BigInteger, nullable=False)
    quantity: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    total_price_cents: Mapped[int] = mapped_column(sa.BigInteger, nullable=False)

    order: Mapped["Order"] = relationship("Order", back_populates="items")

    __table_args__ = (sa.CheckConstraint("quantity > 0", name="quantity_positive"),)

    def __repr__(self) -> str:
        return f"<OrderItem id={self.id} order={self.order_id!r} sku={self.sku!r} qty={self.quantity}>"
