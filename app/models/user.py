# app/models/user.py
from __future__ import annotations

from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


class Segment(Base):
    """
    Customer segment (spend tier).

    - members get `discount_percent` off the subtotal
    - a user belongs to the active tier whose [min_spend_cents, max_spend_cents]
      covers their lifetime spend; max NULL = open-ended
    """

    __tablename__ = "segments"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(sa.String(64), nullable=False, unique=True)
    discount_percent: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    min_spend_cents: Mapped[int] = mapped_column(sa.BigInteger, nullable=False, default=0)
    max_spend_cents: Mapped[Optional[int]] = mapped_column(sa.BigInteger, nullable=True)
    is_active: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)

    __table_args__ = (
        sa.CheckConstraint(
            "discount_percent >= 0 AND discount_percent <= 100", name="discount_percent_range"
        ),
        sa.CheckConstraint("min_spend_cents >= 0", name="min_spend_non_negative"),
    )


class User(Base):
    """
    Users mirror the auth service's accounts. The core reads them for
    ownership checks, admin fan-out and the segment discount, and writes
    only `segment_id` / `lifetime_spent_cents` (on delivery).
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(sa.String(64), primary_key=True)
    name: Mapped[str] = mapped_column(sa.String(255), nullable=False, default="")
    email: Mapped[str] = mapped_column(sa.String(255), nullable=False, unique=True)
    role: Mapped[str] = mapped_column(sa.String(16), nullable=False, default="customer", index=True)
    segment_id: Mapped[Optional[int]] = mapped_column(
        sa.Integer, sa.ForeignKey("segments.id", ondelete="SET NULL"), nullable=True
    )
    lifetime_spent_cents: Mapped[int] = mapped_column(sa.BigInteger, nullable=False, default=0)

    segment: Mapped[Optional[Segment]] = relationship(Segment, lazy="selectin")

    def __repr__(self) -> str:
        return f"<User id={self.id!r} role={self.role}>"
