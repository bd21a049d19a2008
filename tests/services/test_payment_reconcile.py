# tests/services/test_payment_reconcile.py
from __future__ import annotations

from datetime import datetime, timezone

import pytest

from app.adapters.payment_gateway import GatewayError
from app.services import inventory_repo, order_repo
from app.services.order_service import LineRequest
from app.services.payment_reconcile import Outcome
from app.utils.time import ensure_utc
from tests.factories import make_user, make_variant
from tests.helpers.fakes import gw_status


async def _seed(session_maker, *, stock: int = 10, safety_stock: int = 0):
    async with session_maker() as s, s.begin():
        await make_user(s, "u-1")
        await make_user(s, "admin-1", role="admin")
        await make_variant(s, "v-1", price_cents=10000, stock=stock, safety_stock=safety_stock)


async def _order(session_maker, container, qty: int = 2) -> str:
    async with session_maker() as s:
        r = await container.orders.create(s, user_id="u-1", items=[LineRequest("v-1", qty)])
        return r.order.id


async def _state(session_maker, order_id: str):
    async with session_maker() as s:
        order = await order_repo.get_order(s, order_id)
        inv = await inventory_repo.get_inventory(s, "v-1")
        moves = [m.action for m in await inventory_repo.list_movements(s, ref=order_id)]
        return order, (inv.stock_quantity, inv.reserved_quantity), sorted(moves)


@pytest.mark.asyncio
async def test_settlement_commits_stock_and_second_tick_is_noop(session_maker, container, gateway, notifier):
    await _seed(session_maker)
    oid = await _order(session_maker, container)
    gateway.script(oid, gw_status("settlement", settlement_time="2026-05-01 10:00:00"))

    summary = await container.reconciler.run_once()
    assert (summary.checked, summary.settled) == (1, 1)

    order, counters, moves = await _state(session_maker, oid)
    assert order.status == "processing"
    assert order.payment.status == "settlement"
    # gateway local time (Asia/Jakarta, UTC+7)
    assert ensure_utc(order.payment.paid_at) == datetime(2026, 5, 1, 3, 0, tzinfo=timezone.utc)
    assert counters == (8, 0)
    assert moves == ["RESERVE", "STOCK_COMMITTED"]
    assert "PAYMENT_SUCCESS" in notifier.types_for("u-1")

    again = await container.reconciler.run_once()
    assert again.checked == 0
    _, counters2, moves2 = await _state(session_maker, oid)
    assert counters2 == (8, 0)
    assert moves2 == moves


@pytest.mark.asyncio
async def test_capture_counts_as_settled_and_falls_back_to_transaction_time(session_maker, container, gateway):
    await _seed(session_maker)
    oid = await _order(session_maker, container)
    gateway.script(oid, gw_status("capture", transaction_time="2026-05-02 07:30:00"))

    assert await container.reconciler.reconcile_order(oid) is Outcome.SETTLED
    order, _, _ = await _state(session_maker, oid)
    assert ensure_utc(order.payment.paid_at) == datetime(2026, 5, 2, 0, 30, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_expiry_releases_reservation_and_cancels(session_maker, container, gateway, notifier):
    await _seed(session_maker)
    oid = await _order(session_maker, container)
    gateway.script(oid, gw_status("expire"))

    summary = await container.reconciler.run_once()
    assert summary.cancelled == 1

    order, counters, moves = await _state(session_maker, oid)
    assert order.status == "cancelled"
    assert order.payment.status == "expired"
    assert order.payment.paid_at is None
    assert counters == (10, 0)
    assert moves == ["RESERVE", "STOCK_UNRESERVE"]
    cancelled = [p for uid, t, p in notifier.sent if t == "ORDER_CANCELLED"]
    assert cancelled == [{"order_id": oid, "reason": "payment_expired"}]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "err, payment_status, reason",
    [
        (GatewayError("not found", status_code=404), "cancelled", "payment_not_found"),
        (GatewayError("gone", status_code=410), "expired", "payment_expired"),
        (GatewayError("denied", status_code=400, transaction_status="deny"), "cancelled", "payment_denied"),
    ],
)
async def test_terminal_gateway_errors_cancel(session_maker, container, gateway, notifier, err, payment_status, reason):
    await _seed(session_maker)
    oid = await _order(session_maker, container)
    gateway.script(oid, err)

    assert await container.reconciler.reconcile_order(oid) is Outcome.CANCELLED
    order, counters, _ = await _state(session_maker, oid)
    assert order.status == "cancelled"
    assert order.payment.status == payment_status
    assert counters == (10, 0)
    assert [p["reason"] for _, t, p in notifier.sent if t == "ORDER_CANCELLED"] == [reason]


@pytest.mark.asyncio
async def test_one_failure_does_not_stop_the_sweep(session_maker, container, gateway):
    await _seed(session_maker)
    broken = await _order(session_maker, container, qty=1)
    still = await _order(session_maker, container, qty=1)
    good = await _order(session_maker, container, qty=1)
    gateway.script(broken, GatewayError("upstream timeout"))
    gateway.script(still, gw_status("pending"))
    gateway.script(good, gw_status("settlement"))

    summary = await container.reconciler.run_once()
    assert summary.to_dict() == {
        "checked": 3,
        "settled": 1,
        "cancelled": 0,
        "skipped": 1,
        "failed": 1,
        "noop": 0,
    }

    o_broken, _, _ = await _state(session_maker, broken)
    o_good, counters, _ = await _state(session_maker, good)
    assert o_broken.payment.status == "pending"
    assert o_good.status == "processing"
    # two still reserved, one committed
    assert counters == (9, 2)


@pytest.mark.asyncio
async def test_racing_settlements_commit_once(session_maker, container):
    await _seed(session_maker)
    oid = await _order(session_maker, container)

    first = await container.reconciler.settle(oid)
    second = await container.reconciler.settle(oid)
    late_cancel = await container.reconciler.cancel(oid, reason="expire")

    assert (first, second, late_cancel) == (Outcome.SETTLED, Outcome.NOOP, Outcome.NOOP)
    order, counters, moves = await _state(session_maker, oid)
    assert order.status == "processing"
    assert counters == (8, 0)
    assert moves.count("STOCK_COMMITTED") == 1
    assert "STOCK_UNRESERVE" not in moves


@pytest.mark.asyncio
@pytest.mark.parametrize("stock, qty, alert", [(10, 2, "LOW_STOCK"), (2, 2, "OUT_OF_STOCK")])
async def test_stock_alerts_after_settlement(session_maker, container, gateway, notifier, stock, qty, alert):
    await _seed(session_maker, stock=stock, safety_stock=9)
    oid = await _order(session_maker, container, qty=qty)
    gateway.script(oid, gw_status("settlement"))

    await container.reconciler.run_once()
    assert alert in notifier.admin_types()
    payload = dict(notifier.admin_sent)[alert]
    assert payload["variant_id"] == "v-1"
    assert payload["stock_quantity"] == stock - qty


def _commit_fails_for(monkeypatch, ledger, variant_id: str) -> list:
    seen = []
    real_commit = ledger.commit

    async def commit(session, vid, qty, **kw):
        seen.append(vid)
        if vid == variant_id:
            raise RuntimeError(f"commit failed for {vid}")
        return await real_commit(session, vid, qty, **kw)

    monkeypatch.setattr(ledger, "commit", commit)
    return seen


@pytest.mark.asyncio
async def test_settle_failing_midway_rolls_back_everything(session_maker, container, monkeypatch):
    await _seed(session_maker)
    async with session_maker() as s, s.begin():
        await make_variant(s, "v-2", price_cents=5000, stock=5)
    async with session_maker() as s:
        r = await container.orders.create(
            s, user_id="u-1", items=[LineRequest("v-1", 1), LineRequest("v-2", 2)]
        )
        oid = r.order.id

    seen = _commit_fails_for(monkeypatch, container.ledger, "v-2")
    with pytest.raises(RuntimeError):
        await container.reconciler.settle(oid)
    # v-1 was committed before v-2 failed
    assert seen == ["v-1", "v-2"]

    async with session_maker() as s:
        order = await order_repo.get_order(s, oid)
        v1 = await inventory_repo.get_inventory(s, "v-1")
        v2 = await inventory_repo.get_inventory(s, "v-2")
        moves = [m.action for m in await inventory_repo.list_movements(s, ref=oid)]
    assert order.status == "pending"
    assert order.payment.status == "pending"
    assert order.payment.paid_at is None
    assert (v1.stock_quantity, v1.reserved_quantity) == (10, 1)
    assert (v2.stock_quantity, v2.reserved_quantity) == (5, 2)
    assert sorted(moves) == ["RESERVE", "RESERVE"]


@pytest.mark.asyncio
async def test_settlement_error_is_counted_failed_and_retried_next_tick(
    session_maker, container, gateway, monkeypatch
):
    await _seed(session_maker)
    async with session_maker() as s, s.begin():
        await make_variant(s, "v-2", price_cents=5000, stock=5)
    async with session_maker() as s:
        broken = (await container.orders.create(s, user_id="u-1", items=[LineRequest("v-2", 1)])).order.id
    good = await _order(session_maker, container, qty=1)
    gateway.script(broken, gw_status("settlement"))
    gateway.script(good, gw_status("settlement"))

    _commit_fails_for(monkeypatch, container.ledger, "v-2")
    summary = await container.reconciler.run_once()
    assert (summary.checked, summary.settled, summary.failed) == (2, 1, 1)

    async with session_maker() as s:
        o_broken = await order_repo.get_order(s, broken)
        o_good = await order_repo.get_order(s, good)
    assert o_broken.payment.status == "pending"
    assert o_good.status == "processing"

    monkeypatch.undo()
    retry = await container.reconciler.run_once()
    assert (retry.checked, retry.settled) == (1, 1)


@pytest.mark.asyncio
async def test_gateway_transaction_id_recorded_on_settle_and_cancel(session_maker, container, gateway):
    await _seed(session_maker)
    paid = await _order(session_maker, container, qty=1)
    lapsed = await _order(session_maker, container, qty=1)
    gateway.script(paid, gw_status("settlement", transaction_id="trx-paid"))
    gateway.script(lapsed, gw_status("expire", transaction_id="trx-lapsed"))

    await container.reconciler.run_once()

    o_paid, _, _ = await _state(session_maker, paid)
    o_lapsed, _, _ = await _state(session_maker, lapsed)
    assert o_paid.payment.gateway_transaction_id == "trx-paid"
    assert o_paid.payment.payment_token == f"tok-{paid}"
    assert o_lapsed.payment.gateway_transaction_id == "trx-lapsed"


@pytest.mark.asyncio
async def test_not_found_without_token_waits_for_retry_grace(session_maker, container, gateway, notifier):
    await _seed(session_maker)
    gateway.fail_create = True
    oid = await _order(session_maker, container, qty=2)
    gateway.script(oid, GatewayError("not found", status_code=404))

    assert await container.reconciler.reconcile_order(oid) is Outcome.SKIPPED
    order, counters, _ = await _state(session_maker, oid)
    assert order.status == "pending"
    assert order.payment.payment_token is None
    assert counters == (10, 2)
    assert "ORDER_CANCELLED" not in notifier.types_for("u-1")

    # grace over: the usual not_found cancel
    container.reconciler.unissued_grace_seconds = 0
    assert await container.reconciler.reconcile_order(oid) is Outcome.CANCELLED
    order, counters, _ = await _state(session_maker, oid)
    assert order.status == "cancelled"
    assert order.payment.status == "cancelled"
    assert counters == (10, 0)
