# app/services/order_status_service.py
from __future__ import annotations

import logging
from typing import Dict, FrozenSet, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.api.errors import ConflictError, NotFoundError, ValidationError
from app.core.tx import tx_commit
from app.models.enums import (
    NotificationType,
    OrderStatus,
    PaymentStatus,
    ShipmentStatus,
)
from app.models.order import Order
from app.models.shipment import Shipment
from app.services import inventory_repo, order_repo, payment_repo
from app.services.inventory_ledger import InventoryLedger
from app.services.notification_service import Notifier
from app.services.segment_service import SegmentService
from app.utils.time import utc_now

log = logging.getLogger("backoffice.orders")

S = OrderStatus

ALLOWED_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    S.PENDING: frozenset({S.CANCELLED}),
    S.PROCESSING: frozenset({S.READY, S.SHIPPED, S.CANCELLED}),
    S.READY: frozenset({S.SHIPPED, S.CANCELLED}),
    S.SHIPPED: frozenset({S.IN_TRANSIT, S.DELIVERED, S.FAILED}),
    S.IN_TRANSIT: frozenset({S.DELIVERED, S.FAILED}),
    S.FAILED: frozenset({S.SHIPPED, S.CANCELLED}),
}

# stock already committed for these; cancelling puts it back on hand
_COMMITTED = frozenset({S.PROCESSING, S.READY, S.FAILED})

_SHIPMENT_STATUS = {
    S.READY: ShipmentStatus.READY,
    S.SHIPPED: ShipmentStatus.SHIPPED,
    S.IN_TRANSIT: ShipmentStatus.IN_TRANSIT,
    S.DELIVERED: ShipmentStatus.DELIVERED,
    S.FAILED: ShipmentStatus.FAILED,
    S.CANCELLED: ShipmentStatus.CANCELLED,
}

_NOTIFY = {
    S.SHIPPED: NotificationType.ORDER_SHIPPED,
    S.DELIVERED: NotificationType.ORDER_DELIVERED,
    S.CANCELLED: NotificationType.ORDER_CANCELLED,
}


class OrderStatusService:
    """
    Admin-driven order transitions (fulfillment + manual cancel).

    - pending -> cancelled: payment CAS pending -> cancelled, then release reservations
    - processing/ready/failed -> cancelled: restore committed stock
    - shipping states stamp shipments.shipped_at / delivered_at
    - delivered: buyer lifetime spend and segment recomputed in the same transaction
    - `returned` is only reachable through the return flow
    """

    def __init__(
        self,
        *,
        ledger: InventoryLedger,
        notifier: Notifier,
        segments: Optional[SegmentService] = None,
    ):
        self.ledger = ledger
        self.notifier = notifier
        self.segments = segments or SegmentService()

    async def update_status(
        self,
        session: AsyncSession,
        *,
        order_id: str,
        new_status: str,
        actor_id: Optional[str] = None,
        tracking_number: Optional[str] = None,
    ) -> Order:
        try:
            target = OrderStatus(new_status)
        except ValueError:
            raise ValidationError(f"unknown order status {new_status!r}", reason="invalid_status")

        async with tx_commit(session):
            order = await order_repo.get_order(session, order_id, refresh=True)
            if order is None:
                raise NotFoundError(f"order {order_id} not found")
            current = OrderStatus(order.status)
            if current == target:
                return order
            if target not in ALLOWED_TRANSITIONS.get(current, frozenset()):
                raise ValidationError(
                    f"cannot move order from {current.value} to {target.value}",
                    reason="invalid_transition",
                )

            if not await order_repo.transition_status(
                session, order_id, from_status=current, to_status=target
            ):
                raise ConflictError(f"order {order_id} changed concurrently, retry")

            if target == S.CANCELLED:
                await self._cancel_stock(session, order, current, actor_id)

            await self._touch_shipment(session, order, target, tracking_number)
            if target == S.DELIVERED:
                await self.segments.assign_for_user(session, order.user_id)
            order = await order_repo.get_order(session, order_id, refresh=True)

        log.info("order %s: %s -> %s by %s", order_id, current.value, target.value, actor_id)
        kind = _NOTIFY.get(target)
        if kind is not None:
            payload = {"order_id": order_id, "status": target.value}
            if target == S.CANCELLED:
                payload["reason"] = "cancelled_by_admin"
            await self.notifier.notify(order.user_id, kind, payload)
        return order

    async def _cancel_stock(
        self, session: AsyncSession, order: Order, current: OrderStatus, actor_id: Optional[str]
    ) -> None:
        tracked = await inventory_repo.existing_variant_ids(
            session, [it.variant_id for it in order.items if it.variant_id]
        )
        if current == S.PENDING:
            # reconciliation may be settling this very payment; whoever flips it first wins
            if not await payment_repo.transition_from_pending(
                session, order.id, to_status=PaymentStatus.CANCELLED, paid_at=None
            ):
                raise ConflictError(f"payment for order {order.id} is no longer pending")
            for it in order.items:
                if it.variant_id in tracked:
                    await self.ledger.release(
                        session,
                        it.variant_id,
                        it.quantity,
                        ref=order.id,
                        reason="order cancelled by admin",
                        user_id=actor_id,
                    )
        elif current in _COMMITTED:
            for it in order.items:
                if it.variant_id in tracked:
                    await self.ledger.restore(
                        session,
                        it.variant_id,
                        it.quantity,
                        ref=order.id,
                        reason="paid order cancelled by admin",
                        user_id=actor_id,
                    )

    async def _touch_shipment(
        self,
        session: AsyncSession,
        order: Order,
        target: OrderStatus,
        tracking_number: Optional[str],
    ) -> None:
        shipment = order.shipment
        if shipment is None:
            shipment = Shipment(order_id=order.id, status=ShipmentStatus.READY)
            session.add(shipment)
        shipment.status = _SHIPMENT_STATUS.get(target, shipment.status)
        if tracking_number:
            shipment.tracking_number = tracking_number
        now = utc_now()
        if target == S.SHIPPED and shipment.shipped_at is None:
            shipment.shipped_at = now
        if target == S.DELIVERED:
            shipment.delivered_at = now
            if shipment.shipped_at is None:
                shipment.shipped_at = now
        await session.flush()
