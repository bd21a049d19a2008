# tests/services/test_inventory_ledger.py
from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.errors import InsufficientStockError, NotFoundError, ValidationError
from app.models.stock_movement import ImmutableMovementError
from app.services import inventory_repo
from app.services.inventory_ledger import InventoryLedger, level_status
from tests.factories import make_variant


async def _seed(session_maker, **kw) -> None:
    async with session_maker() as s, s.begin():
        await make_variant(s, **kw)


async def _counters(session_maker, variant_id: str):
    async with session_maker() as s:
        inv = await inventory_repo.get_inventory(s, variant_id)
        return inv.stock_quantity, inv.reserved_quantity


@pytest.mark.asyncio
async def test_reserve_earmarks_without_touching_stock(session_maker, session: AsyncSession):
    await _seed(session_maker, variant_id="v-1", stock=10)
    ledger = InventoryLedger()

    async with session.begin():
        mv = await ledger.reserve(session, "v-1", 3, ref="o-1")

    assert mv.action == "RESERVE"
    assert (mv.previous_reserved, mv.new_reserved) == (0, 3)
    assert (mv.previous_quantity, mv.new_quantity) == (10, 10)
    assert mv.quantity_change == 3
    assert mv.ref == "o-1"
    assert await _counters(session_maker, "v-1") == (10, 3)


@pytest.mark.asyncio
async def test_reserve_beyond_available_rejected_and_nothing_written(session_maker, session):
    await _seed(session_maker, variant_id="v-1", stock=5, reserved=4)
    ledger = InventoryLedger()

    with pytest.raises(InsufficientStockError) as ei:
        async with session.begin():
            await ledger.reserve(session, "v-1", 2, ref="o-1")

    err = ei.value
    assert err.code == "INSUFFICIENT_STOCK"
    assert err.details[0]["available_qty"] == 1
    assert err.details[0]["short_qty"] == 1
    assert await _counters(session_maker, "v-1") == (5, 4)
    async with session_maker() as s:
        assert await inventory_repo.list_movements(s, variant_id="v-1") == []


@pytest.mark.asyncio
async def test_commit_moves_reserved_out_of_stock(session_maker, session):
    await _seed(session_maker, variant_id="v-1", stock=10, reserved=3)
    ledger = InventoryLedger()

    async with session.begin():
        mv = await ledger.commit(session, "v-1", 3, ref="o-1")

    assert mv.action == "STOCK_COMMITTED"
    assert mv.quantity_change == -3
    assert await _counters(session_maker, "v-1") == (7, 0)


@pytest.mark.asyncio
async def test_commit_and_release_floor_at_zero(session_maker, session):
    await _seed(session_maker, variant_id="v-1", stock=2, reserved=1)
    ledger = InventoryLedger()

    async with session.begin():
        await ledger.commit(session, "v-1", 3, ref="o-1")
    assert await _counters(session_maker, "v-1") == (0, 0)

    async with session.begin():
        mv = await ledger.release(session, "v-1", 5, ref="o-2")
    assert mv.action == "STOCK_UNRESERVE"
    assert mv.quantity_change == 0
    assert await _counters(session_maker, "v-1") == (0, 0)


@pytest.mark.asyncio
async def test_adjust_add_remove_set(session_maker, session):
    await _seed(session_maker, variant_id="v-1", stock=10)
    ledger = InventoryLedger()

    async with session.begin():
        add = await ledger.adjust(session, "v-1", "add", 5, user_id="admin-1")
        rem = await ledger.adjust(session, "v-1", "remove", 100)
        st = await ledger.adjust(session, "v-1", "set", 0, reason="stocktake")

    assert (add.action, add.new_quantity, add.user_id) == ("STOCK_ADD", 15, "admin-1")
    assert (rem.action, rem.new_quantity, rem.quantity_change) == ("STOCK_REMOVE", 0, -15)
    assert (st.action, st.new_quantity, st.reason) == ("STOCK_SET", 0, "stocktake")
    assert await _counters(session_maker, "v-1") == (0, 0)


@pytest.mark.asyncio
async def test_invalid_quantities_rejected(session_maker, session):
    await _seed(session_maker, variant_id="v-1", stock=10)
    ledger = InventoryLedger()

    for call in (
        lambda: ledger.reserve(session, "v-1", 0),
        lambda: ledger.adjust(session, "v-1", "add", 0),
        lambda: ledger.adjust(session, "v-1", "remove", -1),
        lambda: ledger.restore(session, "v-1", -2),
    ):
        with pytest.raises(ValidationError) as ei:
            await call()
        assert ei.value.reason == "invalid_quantity"

    with pytest.raises(ValidationError) as ei:
        await ledger.adjust(session, "v-1", "explode", 1)
    assert ei.value.reason == "invalid_adjust_type"


@pytest.mark.asyncio
async def test_unknown_variant_is_not_found(session):
    with pytest.raises(NotFoundError):
        await InventoryLedger().reserve(session, "nope", 1)


@pytest.mark.asyncio
async def test_movements_are_append_only(session_maker, session):
    await _seed(session_maker, variant_id="v-1", stock=10)
    ledger = InventoryLedger()
    async with session.begin():
        mv = await ledger.restore(session, "v-1", 1, ref="r-1")

    mv.reason = "rewritten"
    with pytest.raises(ImmutableMovementError):
        await session.flush()
    await session.rollback()


@pytest.mark.asyncio
async def test_levels_status_and_stats(session_maker, session):
    async with session_maker() as s, s.begin():
        await make_variant(s, "v-out", price_cents=1000, stock=0, safety_stock=2)
        await make_variant(s, "v-low", price_cents=1000, additional_price_cents=500, stock=2, safety_stock=5)
        await make_variant(s, "v-ok", price_cents=2000, stock=10, safety_stock=5)
        await make_variant(s, "v-untracked", stock=None)

    ledger = InventoryLedger()
    assert [lv.variant_id for lv in await ledger.list_levels(session, status="low")] == ["v-low"]
    assert [lv.variant_id for lv in await ledger.list_levels(session, status="out")] == ["v-out"]
    assert [lv.variant_id for lv in await ledger.list_levels(session, status="normal")] == ["v-ok"]

    level = await ledger.get_level(session, "v-low")
    assert level.status == "low"
    assert level.sku == "SKU-v-low"
    assert level.available_quantity == 2

    stats = await ledger.stats(session)
    assert stats == {
        "total_sku": 3,
        "low_stock_count": 1,
        "out_of_stock_count": 1,
        "total_value_cents": 2 * 1500 + 10 * 2000,
    }


def test_level_status_boundaries():
    assert level_status(0, 0) == "out"
    assert level_status(3, 3) == "low"
    assert level_status(4, 3) == "normal"
