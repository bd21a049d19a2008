# tests/services/test_return_service.py
from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import Tuple

import pytest

from app.api.errors import NotFoundError, UnauthorizedError, ValidationError
from app.services import inventory_repo, order_repo, return_repo
from app.services.return_service import ReturnLineRequest
from app.utils.time import utc_now
from tests.factories import make_order, make_user, make_variant


async def _delivered_order(session_maker, *, days_ago: float = 2, status: str = "delivered", qty: int = 3) -> Tuple[str, int]:
    async with session_maker() as s, s.begin():
        await make_user(s, "u-1")
        await make_user(s, "u-2")
        await make_user(s, "admin-1", role="admin")
        await make_variant(s, "v-1", price_cents=10000, stock=10)
        order = await make_order(
            s,
            user_id="u-1",
            lines=[("v-1", qty, 10000)],
            status=status,
            delivered_at=utc_now() - timedelta(days=days_ago),
        )
        order_id = order.id
    async with session_maker() as s:
        order = await order_repo.get_order(s, order_id)
        return order_id, order.items[0].id


async def _stock(session_maker) -> int:
    async with session_maker() as s:
        return (await inventory_repo.get_inventory(s, "v-1")).stock_quantity


@pytest.mark.asyncio
async def test_partial_return_lifecycle_restores_stock_once(session_maker, container, notifier):
    order_id, item_id = await _delivered_order(session_maker)
    returns = container.returns

    async with session_maker() as s:
        ret = await returns.create_return(
            s,
            order_id=order_id,
            reason="wrong size",
            items=[ReturnLineRequest(item_id, 2)],
            user_id="u-1",
            images=["https://img.test/1.jpg"],
        )
    assert ret.status == "requested"
    assert [(ri.order_item_id, ri.quantity) for ri in ret.items] == [(item_id, 2)]
    assert notifier.admin_types() == ["RETURN_REQUEST"]

    async with session_maker() as s:
        approved = await returns.update_status(s, return_id=ret.id, new_status="approved", actor_id="admin-1")
    assert approved.status == "approved"

    async with session_maker() as s:
        done = await returns.update_status(s, return_id=ret.id, new_status="completed", actor_id="admin-1")
    assert done.status == "completed"
    assert await _stock(session_maker) == 12

    async with session_maker() as s:
        again = await returns.update_status(s, return_id=ret.id, new_status="completed")
    assert again.status == "completed"
    assert await _stock(session_maker) == 12

    async with session_maker() as s:
        with pytest.raises(ValidationError) as ei:
            await returns.update_status(s, return_id=ret.id, new_status="rejected")
    assert ei.value.reason == "return_completed"

    async with session_maker() as s:
        moves = await inventory_repo.list_movements(s, ref=ret.id)
        assert [(m.action, m.quantity_change, m.user_id) for m in moves] == [("STOCK_ADD", 2, "admin-1")]
        order = await order_repo.get_order(s, order_id)
        assert order.status == "returned"

    assert notifier.types_for("u-1") == ["RETURN_APPROVED", "RETURN_COMPLETED"]


@pytest.mark.asyncio
async def test_concurrent_completion_restores_once(session_maker, container):
    order_id, item_id = await _delivered_order(session_maker)
    async with session_maker() as s:
        ret = await container.returns.create_return(
            s, order_id=order_id, reason="broken", items=[ReturnLineRequest(item_id, 3)], user_id="u-1"
        )

    async def complete():
        async with session_maker() as s:
            return await container.returns.update_status(s, return_id=ret.id, new_status="completed")

    await asyncio.gather(complete(), complete())
    assert await _stock(session_maker) == 13
    async with session_maker() as s:
        assert len(await inventory_repo.list_movements(s, ref=ret.id)) == 1


@pytest.mark.asyncio
async def test_outside_window_rejected_and_nothing_written(session_maker, container, notifier):
    order_id, item_id = await _delivered_order(session_maker, days_ago=10)

    async with session_maker() as s:
        with pytest.raises(ValidationError) as ei:
            await container.returns.create_return(
                s, order_id=order_id, reason="late", items=[ReturnLineRequest(item_id, 1)], user_id="u-1"
            )
    assert ei.value.reason == "return_window_expired"

    async with session_maker() as s:
        assert await return_repo.list_returns(s) == []
    assert notifier.admin_sent == []


@pytest.mark.asyncio
async def test_window_edge_is_inclusive(session_maker, container):
    order_id, item_id = await _delivered_order(session_maker, days_ago=7.5)
    async with session_maker() as s:
        ret = await container.returns.create_return(
            s, order_id=order_id, reason="edge", items=[ReturnLineRequest(item_id, 1)], user_id="u-1"
        )
    assert ret.status == "requested"


@pytest.mark.asyncio
async def test_request_validation(session_maker, container):
    order_id, item_id = await _delivered_order(session_maker)
    returns = container.returns

    async def reason_of(exc_type, **kw):
        async with session_maker() as s:
            with pytest.raises(exc_type) as ei:
                await returns.create_return(s, **kw)
        return ei.value

    base = {"order_id": order_id, "reason": "x", "user_id": "u-1"}
    err = await reason_of(ValidationError, **{**base, "items": [ReturnLineRequest(item_id, 4)]})
    assert err.details[0]["reason"] == "quantity_exceeds_purchased"
    assert err.details[0]["purchased_qty"] == 3

    # split lines for the same item still count against the purchased quantity
    err = await reason_of(
        ValidationError, **{**base, "items": [ReturnLineRequest(item_id, 2), ReturnLineRequest(item_id, 2)]}
    )
    assert err.details[0]["path"] == "items[1]"

    err = await reason_of(ValidationError, **{**base, "items": [ReturnLineRequest(999999, 1)]})
    assert err.details[0]["reason"] == "order_item_not_found"

    err = await reason_of(ValidationError, **{**base, "items": []})
    assert err.reason == "empty_return"

    err = await reason_of(ValidationError, **{**base, "reason": "  ", "items": [ReturnLineRequest(item_id, 1)]})
    assert err.reason == "reason_required"

    await reason_of(UnauthorizedError, **{**base, "user_id": "u-2", "items": [ReturnLineRequest(item_id, 1)]})
    await reason_of(NotFoundError, **{**base, "order_id": "missing", "items": [ReturnLineRequest(item_id, 1)]})


@pytest.mark.asyncio
async def test_only_delivered_orders_are_returnable(session_maker, container):
    order_id, item_id = await _delivered_order(session_maker, status="processing")
    async with session_maker() as s:
        with pytest.raises(ValidationError) as ei:
            await container.returns.create_return(
                s, order_id=order_id, reason="x", items=[ReturnLineRequest(item_id, 1)], user_id="u-1"
            )
    assert ei.value.reason == "order_not_returnable"


@pytest.mark.asyncio
async def test_one_active_return_per_order(session_maker, container):
    order_id, item_id = await _delivered_order(session_maker)
    line = [ReturnLineRequest(item_id, 1)]

    async with session_maker() as s:
        first = await container.returns.create_return(s, order_id=order_id, reason="a", items=line, user_id="u-1")

    async with session_maker() as s:
        with pytest.raises(ValidationError) as ei:
            await container.returns.create_return(s, order_id=order_id, reason="b", items=line, user_id="u-1")
    assert ei.value.reason == "return_exists"

    async with session_maker() as s:
        await container.returns.update_status(s, return_id=first.id, new_status="rejected")
    async with session_maker() as s:
        second = await container.returns.create_return(s, order_id=order_id, reason="c", items=line, user_id="u-1")
    assert second.id != first.id
