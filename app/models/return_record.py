# app/models/return_record.py
from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.order import new_id
from app.models.order_item import OrderItem
from app.utils.time import utc_now


class Return(Base):
    """
    Customer return request.

    Status flow: requested -> approved/rejected/processing -> completed.
    Entering `completed` restores stock exactly once.
    """

    __tablename__ = "returns"
    __table_args__ = (sa.Index("ix_returns_order_status", "order_id", "status"),)

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=new_id)
    order_id: Mapped[str] = mapped_column(
        sa.String(36), sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[Optional[str]] = mapped_column(
        sa.String(64), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    status: Mapped[str] = mapped_column(sa.String(16), nullable=False, default="requested")
    reason: Mapped[str] = mapped_column(sa.Text, nullable=False)
    images: Mapped[Optional[list[Any]]] = mapped_column(sa.JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    items: Mapped[List["ReturnItem"]] = relationship(
        "ReturnItem",
        back_populates="return_",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ReturnItem.id",
    )

    def __repr__(self) -> str:
        return f"<Return id={self.id!r} order={self.order_id!r} status={self.status}>"


class ReturnItem(Base):
    __tablename__ = "return_items"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    return_id: Mapped[str] = mapped_column(
        sa.String(36), sa.ForeignKey("returns.id", ondelete="CASCADE"), nullable=False, index=True
    )
    order_item_id: Mapped[int] = mapped_column(
        sa.Integer, sa.ForeignKey("order_items.id", ondelete="CASCADE"), nullable=False
    )
    quantity: Mapped[int] = mapped_column(sa.Integer, nullable=False)

    return_: Mapped[Return] = relationship(Return, back_populates="items")
    order_item: Mapped[OrderItem] = relationship(OrderItem, lazy="selectin")

    __table_args__ = (sa.CheckConstraint("quantity > 0", name="quantity_positive"),)
