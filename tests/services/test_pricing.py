# tests/services/test_pricing.py
from app.services.pricing import PricedLine, compute_totals, percent_of, shipping_for, tax_for


def _line(price: int, qty: int, vid: str = "v-1") -> PricedLine:
    return PricedLine(variant_id=vid, sku=f"SKU-{vid}", title=vid, unit_price_cents=price, quantity=qty)


def test_two_units_ten_percent_tax_no_shipping():
    t = compute_totals([_line(10000, 2), _line(5000, 1, "v-2")], tax_rate_bp=1000)
    assert (t.subtotal_cents, t.tax_cents, t.shipping_cents, t.discount_cents) == (25000, 2500, 0, 0)
    assert t.total_cents == 27500


def test_shipping_added_after_tax():
    t = compute_totals([_line(10000, 2), _line(5000, 1, "v-2")], tax_rate_bp=1000, shipping_cents=2000)
    assert t.total_cents == 29500


def test_segment_and_coupon_discounts_stack_and_cap_at_subtotal():
    t = compute_totals(
        [_line(1000, 1)],
        tax_rate_bp=1000,
        segment_discount_percent=50,
        coupon_discount_cents=800,
    )
    assert t.discount_cents == 1000
    # tax stays on the undiscounted subtotal
    assert t.total_cents == 100


def test_rounding_half_up():
    assert tax_for(5, 1000) == 1  # 0.5 -> 1
    assert tax_for(4, 1000) == 0
    assert percent_of(15, 10) == 2  # 1.5 -> 2
    assert percent_of(14, 10) == 1


def test_shipping_rate_lookup():
    rates = {1: 9000, 2: 15000}
    assert shipping_for(2, rates) == 15000
    assert shipping_for(99, rates) == 0
    assert shipping_for(None, rates) == 0
