# app/services/payment_reconcile.py
from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass
from datetime import datetime
from enum import StrEnum
from typing import Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.adapters.payment_gateway import GatewayError, GatewayStatus, PaymentGateway
from app.models.enums import NotificationType, OrderStatus, PaymentStatus, StockLevelStatus
from app.obs.metrics import (
    gateway_errors_total,
    payment_pending_gauge,
    payment_reconcile_duration,
    payment_reconcile_total,
)
from app.services import inventory_repo, order_repo, payment_repo
from app.services.inventory_ledger import InventoryLedger, level_status
from app.services.notification_service import Notifier
from app.services.payment_classify import (
    Decision,
    classify_gateway_error,
    classify_transaction_status,
)
from app.utils.time import ensure_utc, parse_local_timestamp, utc_now

log = logging.getLogger("backoffice.payment")

_CANCEL_REASONS: Dict[str, str] = {
    "expire": "payment_expired",
    "cancel": "payment_cancelled",
    "deny": "payment_denied",
    "not_found": "payment_not_found",
}


class Outcome(StrEnum):
    SETTLED = "settled"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"  # gateway still reports a non-terminal state
    FAILED = "failed"  # transient gateway error or settlement error; retried next tick
    NOOP = "noop"  # payment already resolved by someone else


@dataclass
class ReconcileSummary:
    checked: int = 0
    settled: int = 0
    cancelled: int = 0
    skipped: int = 0
    failed: int = 0
    noop: int = 0

    def add(self, outcome: Outcome) -> None:
        setattr(self, outcome.value, getattr(self, outcome.value) + 1)

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


class PaymentReconciler:
    """
    Drives pending payments to a terminal state from the gateway's view.

    settle (one transaction):
        payments: pending -> settlement (CAS), paid_at = settlement/transaction time or now
        inventory: commit every item that has a variant with an inventory row
        orders:   -> processing
    cancel (one transaction):
        payments: pending -> expired (reason expire) | cancelled (CAS), paid_at cleared
        inventory: release every item that has a variant with an inventory row
        orders:   -> cancelled

    When the CAS matches nothing the payment was already resolved by a racing
    tick or a status request, and nothing else is touched. Notifications go
    out only after commit.

    A 404 for a payment that never got a token is held back for
    `unissued_grace_seconds` so the buyer can still retry checkout.
    """

    def __init__(
        self,
        *,
        session_maker: async_sessionmaker[AsyncSession],
        gateway: PaymentGateway,
        ledger: InventoryLedger,
        notifier: Notifier,
        gateway_timezone: str = "Asia/Jakarta",
        unissued_grace_seconds: int = 3600,
    ):
        self._session_maker = session_maker
        self.gateway = gateway
        self.ledger = ledger
        self.notifier = notifier
        self.gateway_timezone = gateway_timezone
        self.unissued_grace_seconds = int(unissued_grace_seconds)

    # ------------------------------------------------------------------
    # sweep
    # ------------------------------------------------------------------
    async def run_once(self) -> ReconcileSummary:
        started = time.perf_counter()
        summary = ReconcileSummary()

        async with self._session_maker() as session:
            pending = await payment_repo.list_pending_with_owner(session)
        payment_pending_gauge.set(len(pending))

        for order_id, _user_id in pending:
            summary.checked += 1
            try:
                outcome = await self.reconcile_order(order_id)
            except Exception:
                log.exception("reconcile failed for order %s", order_id)
                outcome = Outcome.FAILED
            summary.add(outcome)
            payment_reconcile_total.labels(outcome.value).inc()

        payment_reconcile_duration.observe(time.perf_counter() - started)
        if summary.checked:
            log.info("payment reconcile tick: %s", summary.to_dict())
        return summary

    async def reconcile_order(self, order_id: str) -> Outcome:
        try:
            status = await self.gateway.get_status(order_id)
        except GatewayError as exc:
            verdict = classify_gateway_error(exc)
            if not verdict.terminal:
                gateway_errors_total.labels("get_status", str(exc.status_code or "transport")).inc()
                log.warning(
                    "gateway status failed for order %s (status=%s): %s; retry next tick",
                    order_id,
                    exc.status_code,
                    exc.message,
                )
                return Outcome.FAILED
            if verdict.reason == "not_found" and await self._unissued_in_grace(order_id):
                log.info("order %s has no gateway transaction yet, within retry grace", order_id)
                return Outcome.SKIPPED
            log.info("gateway error is terminal for order %s: %s", order_id, verdict.reason)
            return await self.cancel(order_id, reason=verdict.reason or "expire")
        return await self.apply_status(order_id, status)

    async def _unissued_in_grace(self, order_id: str) -> bool:
        """Token creation failed at checkout and the buyer may still retry it."""
        async with self._session_maker() as session:
            payment = await payment_repo.get_by_order(session, order_id)
        if payment is None or payment.payment_token is not None:
            return False
        age = (utc_now() - ensure_utc(payment.created_at)).total_seconds()
        return age < self.unissued_grace_seconds

    async def apply_status(self, order_id: str, status: GatewayStatus) -> Outcome:
        decision = classify_transaction_status(status.transaction_status)
        transaction_id = status.raw.get("transaction_id") or None
        if decision is Decision.SETTLE:
            paid_at = (
                parse_local_timestamp(status.settlement_time, self.gateway_timezone)
                or parse_local_timestamp(status.transaction_time, self.gateway_timezone)
                or utc_now()
            )
            return await self.settle(order_id, paid_at=paid_at, transaction_id=transaction_id)
        if decision is Decision.CANCEL:
            return await self.cancel(
                order_id, reason=str(status.transaction_status).lower(), transaction_id=transaction_id
            )
        log.debug("order %s still %s at gateway", order_id, status.transaction_status)
        return Outcome.SKIPPED

    # ------------------------------------------------------------------
    # terminal transitions
    # ------------------------------------------------------------------
    async def settle(
        self, order_id: str, *, paid_at: Optional[datetime] = None, transaction_id: Optional[str] = None
    ) -> Outcome:
        paid_at = paid_at or utc_now()
        committed: List[str] = []
        async with self._session_maker() as session:
            async with session.begin():
                if not await payment_repo.transition_from_pending(
                    session,
                    order_id,
                    to_status=PaymentStatus.SETTLEMENT,
                    paid_at=paid_at,
                    transaction_id=transaction_id,
                ):
                    log.info("settle skipped, payment for %s no longer pending", order_id)
                    return Outcome.NOOP
                order = await order_repo.get_order(session, order_id)
                tracked = await inventory_repo.existing_variant_ids(
                    session, [it.variant_id for it in order.items if it.variant_id]
                )
                for it in order.items:
                    if it.variant_id in tracked:
                        await self.ledger.commit(
                            session, it.variant_id, it.quantity, ref=order_id, reason=f"order {order_id} paid"
                        )
                        committed.append(it.variant_id)
                await order_repo.set_status(session, order_id, OrderStatus.PROCESSING)
                user_id = order.user_id
                total = int(order.total_cents)

        log.info("payment settled: order=%s paid_at=%s", order_id, paid_at.isoformat())
        await self.notifier.notify(
            user_id,
            NotificationType.PAYMENT_SUCCESS,
            {"order_id": order_id, "amount_cents": total, "paid_at": paid_at.isoformat()},
        )
        await self._stock_alerts(committed)
        return Outcome.SETTLED

    async def cancel(self, order_id: str, *, reason: str, transaction_id: Optional[str] = None) -> Outcome:
        to_status = PaymentStatus.EXPIRED if reason == "expire" else PaymentStatus.CANCELLED
        async with self._session_maker() as session:
            async with session.begin():
                if not await payment_repo.transition_from_pending(
                    session, order_id, to_status=to_status, paid_at=None, transaction_id=transaction_id
                ):
                    log.info("cancel skipped, payment for %s no longer pending", order_id)
                    return Outcome.NOOP
                order = await order_repo.get_order(session, order_id)
                tracked = await inventory_repo.existing_variant_ids(
                    session, [it.variant_id for it in order.items if it.variant_id]
                )
                for it in order.items:
                    if it.variant_id in tracked:
                        await self.ledger.release(
                            session,
                            it.variant_id,
                            it.quantity,
                            ref=order_id,
                            reason=f"order {order_id} payment {reason}",
                        )
                await order_repo.set_status(session, order_id, OrderStatus.CANCELLED)
                user_id = order.user_id

        log.info("payment cancelled: order=%s reason=%s", order_id, reason)
        await self.notifier.notify(
            user_id,
            NotificationType.ORDER_CANCELLED,
            {"order_id": order_id, "reason": _CANCEL_REASONS.get(reason, f"payment_{reason}")},
        )
        return Outcome.CANCELLED

    async def _stock_alerts(self, variant_ids: List[str]) -> None:
        if not variant_ids:
            return
        try:
            async with self._session_maker() as session:
                levels = [await self.ledger.get_level(session, v) for v in sorted(set(variant_ids))]
        except Exception:
            log.exception("stock alert lookup failed for %s", variant_ids)
            return
        for lv in levels:
            status = level_status(lv.stock_quantity, lv.safety_stock)
            if status == StockLevelStatus.OUT:
                kind = NotificationType.OUT_OF_STOCK
            elif status == StockLevelStatus.LOW:
                kind = NotificationType.LOW_STOCK
            else:
                continue
            await self.notifier.notify_all_admins(
                kind,
                {
                    "variant_id": lv.variant_id,
                    "sku": lv.sku,
                    "stock_quantity": lv.stock_quantity,
                    "safety_stock": lv.safety_stock,
                },
            )
