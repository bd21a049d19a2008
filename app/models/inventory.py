# app/models/inventory.py
from __future__ import annotations

from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.product import ProductVariant
from app.utils.time import utc_now


class Inventory(Base):
    """
    Per-variant stock counters.

    - stock_quantity:    on-hand, never negative
    - reserved_quantity: earmarked for unsettled orders, never negative
      (may exceed stock_quantity after an admin adjustment)
    - safety_stock:      reorder threshold, informational

    Only InventoryLedger mutates these rows; every mutation appends a StockMovement.
    """

    __tablename__ = "inventory"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    variant_id: Mapped[str] = mapped_column(
        sa.String(64),
        sa.ForeignKey("product_variants.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    stock_quantity: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    reserved_quantity: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    safety_stock: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    variant: Mapped[ProductVariant] = relationship(ProductVariant, lazy="selectin")

    __table_args__ = (
        sa.CheckConstraint("stock_quantity >= 0", name="stock_non_negative"),
        sa.CheckConstraint("reserved_quantity >= 0", name="reserved_non_negative"),
        sa.CheckConstraint("safety_stock >= 0", name="safety_non_negative"),
    )

    @property
    def available_quantity(self) -> int:
        return int(self.stock_quantity) - int(self.reserved_quantity)

    def __repr__(self) -> str:
        return (
            f"<Inventory variant={self.variant_id!r} stock={self.stock_quantity} "
            f"reserved={self.reserved_quantity}>"
        )
