# app/services/pricing.py
"""
Order pricing in integer minor units.

    subtotal = sum(unit_price * qty)
    discount = segment percent + coupon discount, capped at subtotal
    tax      = subtotal * tax_rate_bp / 10000, rounded half up
    shipping = flat rate per shipment method (0 when unknown/absent)
    total    = subtotal - discount + tax + shipping
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

BP_DENOMINATOR = 10_000


@dataclass(frozen=True)
class PricedLine:
    variant_id: str
    sku: str
    title: str
    unit_price_cents: int
    quantity: int

    @property
    def total_price_cents(self) -> int:
        return self.unit_price_cents * self.quantity


@dataclass(frozen=True)
class Totals:
    subtotal_cents: int
    discount_cents: int
    tax_cents: int
    shipping_cents: int
    total_cents: int


def percent_of(amount: int, percent: int) -> int:
    """amount * percent / 100, rounded half up."""
    return (int(amount) * int(percent) + 50) // 100


def tax_for(subtotal_cents: int, tax_rate_bp: int) -> int:
    return (int(subtotal_cents) * int(tax_rate_bp) + BP_DENOMINATOR // 2) // BP_DENOMINATOR


def shipping_for(shipment_method_id: Optional[int], rates: Mapping[int, int]) -> int:
    if shipment_method_id is None:
        return 0
    return int(rates.get(int(shipment_method_id), 0))


def compute_totals(
    lines: Sequence[PricedLine],
    *,
    tax_rate_bp: int,
    shipping_cents: int = 0,
    segment_discount_percent: int = 0,
    coupon_discount_cents: int = 0,
) -> Totals:
    subtotal = sum(line.total_price_cents for line in lines)
    discount = percent_of(subtotal, segment_discount_percent) + int(coupon_discount_cents)
    discount = max(0, min(discount, subtotal))
    tax = tax_for(subtotal, tax_rate_bp)
    shipping = int(shipping_cents)
    return Totals(
        subtotal_cents=subtotal,
        discount_cents=discount,
        tax_cents=tax,
        shipping_cents=shipping,
        total_cents=subtotal - discount + tax + shipping,
    )
