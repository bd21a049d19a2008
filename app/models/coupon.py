# app/models/coupon.py
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.user import Segment

coupon_segments = sa.Table(
    "coupon_segments",
    Base.metadata,
    sa.Column(
        "coupon_id", sa.Integer, sa.ForeignKey("coupons.id", ondelete="CASCADE"), primary_key=True
    ),
    sa.Column(
        "segment_id", sa.Integer, sa.ForeignKey("segments.id", ondelete="CASCADE"), primary_key=True
    ),
)


class Coupon(Base):
    """
    Discount coupon.

    - discount_type 'percentage': discount_value is a percent of the subtotal
    - discount_type 'fixed': discount_value is minor units
    - segments: when non-empty, only members of these segments may use it
    """

    __tablename__ = "coupons"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(sa.String(64), nullable=False, unique=True)
    discount_type: Mapped[str] = mapped_column(sa.String(16), nullable=False)
    discount_value: Mapped[int] = mapped_column(sa.BigInteger, nullable=False)
    min_subtotal_cents: Mapped[int] = mapped_column(sa.BigInteger, nullable=False, default=0)
    usage_limit: Mapped[Optional[int]] = mapped_column(sa.Integer, nullable=True)
    starts_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    is_active: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)

    segments: Mapped[List[Segment]] = relationship(
        Segment, secondary=coupon_segments, lazy="selectin"
    )

    __table_args__ = (sa.CheckConstraint("discount_value >= 0", name="discount_non_negative"),)

    def __repr__(self) -> str:
        return f"<Coupon code={self.code!r} {self.discount_type}={self.discount_value}>"
