# app/models/stock_movement.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy import event
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.utils.time import utc_now

# 64-bit ids; SQLite only autoincrements INTEGER PRIMARY KEY
BigIntId = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


class StockMovement(Base):
    """
    Stock movement log (append-only, never edited or deleted).

    - quantity_change: signed delta on the counter the action touches
      (reserved for RESERVE/STOCK_UNRESERVE, on-hand otherwise)
    - previous/new_quantity: on-hand before/after
    - previous/new_reserved: reserved before/after
    - ref: order id or return id that caused the movement
    """

    __tablename__ = "stock_movements"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    variant_id: Mapped[str] = mapped_column(sa.String(64), nullable=False, index=True)
    action: Mapped[str] = mapped_column(sa.String(32), nullable=False)

    quantity_change: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    previous_quantity: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    new_quantity: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    previous_reserved: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    new_reserved: Mapped[int] = mapped_column(sa.Integer, nullable=False)

    reason: Mapped[Optional[str]] = mapped_column(sa.String(255), nullable=True)
    ref: Mapped[Optional[str]] = mapped_column(sa.String(64), nullable=True, index=True)
    user_id: Mapped[Optional[str]] = mapped_column(sa.String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utc_now, index=True
    )

    def __repr__(self) -> str:
        return (
            f"<StockMovement {self.action} variant={self.variant_id!r} "
            f"change={self.quantity_change} ref={self.ref!r}>"
        )


class ImmutableMovementError(RuntimeError):
    pass


@event.listens_for(StockMovement, "before_update")
def _reject_update(_mapper, _conn, target: StockMovement) -> None:
    raise ImmutableMovementError(f"stock movement {target.id} is append-only")


@event.listens_for(StockMovement, "before_delete")
def _reject_delete(_mapper, _conn, target: StockMovement) -> None:
    raise ImmutableMovementError(f"stock movement {target.id} is append-only")
