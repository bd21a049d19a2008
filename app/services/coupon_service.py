# app/services/coupon_service.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.api.errors import ValidationError
from app.models.enums import DiscountType
from app.services import coupon_repo, order_repo
from app.services.pricing import percent_of
from app.utils.time import ensure_utc, utc_now


@dataclass(frozen=True)
class CouponDiscount:
    code: str
    discount_cents: int


class CouponService:
    """
    Coupon validation:
      - exists and is_active
      - inside starts_at .. expires_at
      - usage_limit not exhausted (orders using the code, cancelled excluded)
      - subtotal >= min_subtotal_cents
      - segment restriction (when the coupon lists segments)

    Any failure -> VALIDATION_ERROR with a `coupon_*` reason.
    """

    async def validate(
        self,
        session: AsyncSession,
        *,
        code: str,
        subtotal_cents: int,
        segment_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> CouponDiscount:
        now = now or utc_now()
        coupon = await coupon_repo.get_by_code(session, code)
        if coupon is None:
            raise ValidationError(f"coupon {code} not found", reason="coupon_not_found")
        if not coupon.is_active:
            raise ValidationError(f"coupon {code} is inactive", reason="coupon_inactive")

        starts_at = ensure_utc(coupon.starts_at)
        expires_at = ensure_utc(coupon.expires_at)
        if starts_at is not None and now < starts_at:
            raise ValidationError(f"coupon {code} is not active yet", reason="coupon_not_started")
        if expires_at is not None and now > expires_at:
            raise ValidationError(f"coupon {code} has expired", reason="coupon_expired")

        if coupon.usage_limit is not None:
            used = await order_repo.count_coupon_usage(session, coupon.code)
            if used >= coupon.usage_limit:
                raise ValidationError(
                    f"coupon {code} usage limit reached", reason="coupon_usage_limit"
                )

        if subtotal_cents < int(coupon.min_subtotal_cents or 0):
            raise ValidationError(
                f"subtotal below coupon minimum {coupon.min_subtotal_cents}",
                reason="coupon_min_subtotal",
            )

        if coupon.segments:
            allowed = {s.id for s in coupon.segments}
            if segment_id not in allowed:
                raise ValidationError(
                    f"coupon {code} is not available for this customer",
                    reason="coupon_segment",
                )

        if coupon.discount_type == DiscountType.PERCENTAGE:
            discount = percent_of(subtotal_cents, int(coupon.discount_value))
        elif coupon.discount_type == DiscountType.FIXED:
            discount = int(coupon.discount_value)
        else:
            raise ValidationError(
                f"coupon {code} has unknown discount type {coupon.discount_type!r}",
                reason="coupon_invalid",
            )
        return CouponDiscount(code=coupon.code, discount_cents=min(discount, int(subtotal_cents)))
