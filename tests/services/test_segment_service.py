# tests/services/test_segment_service.py
from __future__ import annotations

import pytest

from app.models.user import Segment
from app.services import catalog_repo, order_repo
from app.services.order_service import LineRequest
from app.services.segment_service import SegmentService, pick_segment
from tests.factories import make_order, make_segment, make_user, make_variant


def _tiers():
    # highest threshold first, as list_active_segments returns them
    return [
        Segment(id=3, name="gold", discount_percent=10, min_spend_cents=500_000, max_spend_cents=None),
        Segment(id=2, name="silver", discount_percent=5, min_spend_cents=100_000, max_spend_cents=499_999),
        Segment(id=1, name="bronze", discount_percent=0, min_spend_cents=0, max_spend_cents=99_999),
    ]


@pytest.mark.parametrize(
    "spent, expected",
    [(0, "bronze"), (99_999, "bronze"), (100_000, "silver"), (499_999, "silver"), (500_000, "gold"), (9_000_000, "gold")],
)
def test_pick_segment_by_spend_range(spent, expected):
    assert pick_segment(_tiers(), spent).name == expected


def test_pick_segment_falls_back_to_lowest_tier():
    gap = [
        Segment(id=2, name="silver", discount_percent=5, min_spend_cents=100_000, max_spend_cents=None),
        Segment(id=1, name="starter", discount_percent=0, min_spend_cents=50_000, max_spend_cents=60_000),
    ]
    assert pick_segment(gap, 10).name == "starter"
    assert pick_segment([], 10) is None


async def _seed_tiers(s):
    await make_segment(s, "bronze", 0, min_spend_cents=0, max_spend_cents=99_999)
    silver = await make_segment(s, "silver", 5, min_spend_cents=100_000, max_spend_cents=499_999)
    await make_segment(s, "gold", 10, min_spend_cents=500_000)
    await make_segment(s, "retired", 50, min_spend_cents=100_000, is_active=False)
    return silver


@pytest.mark.asyncio
async def test_assign_counts_only_paid_orders(session_maker):
    async with session_maker() as s, s.begin():
        silver = await _seed_tiers(s)
        await make_user(s, "u-1")
        await make_variant(s, "v-1", stock=10)
        await make_order(s, user_id="u-1", lines=[("v-1", 1, 80_000)], status="delivered")
        await make_order(s, user_id="u-1", lines=[("v-1", 1, 30_000)], status="processing")
        await make_order(s, user_id="u-1", lines=[("v-1", 1, 900_000)], status="cancelled")
        await make_order(s, user_id="u-1", lines=[("v-1", 1, 900_000)], status="returned")
        await make_order(s, user_id="u-1", lines=[("v-1", 1, 900_000)], status="pending")
        silver_id = silver.id

    async with session_maker() as s, s.begin():
        result = await SegmentService().assign_for_user(s, "u-1")
    assert (result.lifetime_spent_cents, result.segment_id) == (110_000, silver_id)

    async with session_maker() as s:
        user = await catalog_repo.get_user(s, "u-1")
        assert user.segment_id == silver_id
        assert user.lifetime_spent_cents == 110_000
        assert await order_repo.lifetime_spend(s, "nobody") == 0


@pytest.mark.asyncio
async def test_delivery_moves_buyer_into_matching_segment(session_maker, container):
    async with session_maker() as s, s.begin():
        silver = await _seed_tiers(s)
        await make_user(s, "u-1")
        await make_variant(s, "v-1", price_cents=10_000, stock=10)
        # earlier delivered purchase
        await make_order(s, user_id="u-1", lines=[("v-1", 1, 90_000)], status="delivered")
        silver_id = silver.id

    async with session_maker() as s:
        created = await container.orders.create(s, user_id="u-1", items=[LineRequest("v-1", 2)])
        oid = created.order.id
        # 2 x 10000 + 10% tax
        assert created.order.total_cents == 22_000
    await container.reconciler.settle(oid)

    for status in ("shipped", "delivered"):
        async with session_maker() as s:
            await container.order_status.update_status(s, order_id=oid, new_status=status, actor_id="admin-1")
        async with session_maker() as s:
            user = await catalog_repo.get_user(s, "u-1")
            if status == "shipped":
                # only delivery recomputes the tier
                assert (user.segment_id, user.lifetime_spent_cents) == (None, 0)

    assert user.segment_id == silver_id
    assert user.lifetime_spent_cents == 112_000
