# app/services/return_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from app.adapters.auth_client import CurrentUser
from app.api.errors import NotFoundError, UnauthorizedError, ValidationError
from app.core.tx import tx_commit
from app.models.enums import NotificationType, OrderStatus, ReturnStatus
from app.models.return_record import Return, ReturnItem
from app.services import inventory_repo, order_repo, return_repo
from app.services.inventory_ledger import InventoryLedger
from app.services.notification_service import Notifier
from app.utils.time import utc_now, whole_days_between

log = logging.getLogger("backoffice.returns")

# `completed` is not an order status this service writes; rows carrying it are still honoured
RETURNABLE_ORDER_STATUSES = (OrderStatus.DELIVERED.value, "completed")

_NOTIFY = {
    ReturnStatus.APPROVED: NotificationType.RETURN_APPROVED,
    ReturnStatus.REJECTED: NotificationType.RETURN_REJECTED,
    ReturnStatus.COMPLETED: NotificationType.RETURN_COMPLETED,
}


@dataclass(frozen=True)
class ReturnLineRequest:
    order_item_id: int
    quantity: int


class ReturnService:
    """
    Return requests and their admin status flow.

    create_return() checks, in order:
      - order exists (NOT_FOUND) and belongs to the caller (UNAUTHORIZED)
      - order status is returnable
      - shipment delivered_at (when recorded) is at most `window_days` whole days ago
      - no active (not rejected/completed) return for the order
      - every item belongs to the order and quantity <= purchased
    Nothing is written unless all checks pass.

    update_status() into `completed` runs once: a CAS on returns.status,
    order -> returned and stock restore share one transaction.
    """

    def __init__(self, *, ledger: InventoryLedger, notifier: Notifier, window_days: int = 7):
        self.ledger = ledger
        self.notifier = notifier
        self.window_days = int(window_days)

    async def create_return(
        self,
        session: AsyncSession,
        *,
        order_id: str,
        reason: str,
        items: Sequence[ReturnLineRequest],
        user_id: str,
        images: Optional[List[Any]] = None,
        now: Optional[datetime] = None,
    ) -> Return:
        if not items:
            raise ValidationError("return must contain at least one item", reason="empty_return")
        if not (reason or "").strip():
            raise ValidationError("return reason is required", reason="reason_required")

        async with tx_commit(session):
            order = await order_repo.get_order(session, order_id)
            if order is None:
                raise NotFoundError(f"order {order_id} not found")
            if order.user_id != user_id:
                raise UnauthorizedError(f"order {order_id} does not belong to the current user")
            if order.status not in RETURNABLE_ORDER_STATUSES:
                raise ValidationError(
                    f"order {order_id} is {order.status}; only delivered orders can be returned",
                    reason="order_not_returnable",
                )

            delivered_at = order.shipment.delivered_at if order.shipment is not None else None
            if delivered_at is not None:
                elapsed = whole_days_between(delivered_at, now or utc_now())
                if elapsed > self.window_days:
                    raise ValidationError(
                        f"return window of {self.window_days} days has expired ({elapsed} days since delivery)",
                        reason="return_window_expired",
                    )

            active = await return_repo.find_active_for_order(session, order_id)
            if active is not None:
                raise ValidationError(
                    f"order {order_id} already has an active return {active.id}",
                    reason="return_exists",
                )

            purchased: Dict[int, int] = {it.id: int(it.quantity) for it in order.items}
            requested: Dict[int, int] = {}
            for i, line in enumerate(items):
                oid = int(line.order_item_id)
                if oid not in purchased:
                    raise ValidationError(
                        f"order item {oid} is not part of order {order_id}",
                        details=[{"type": "validation", "path": f"items[{i}]", "reason": "order_item_not_found", "order_item_id": oid}],
                    )
                if int(line.quantity) <= 0:
                    raise ValidationError(
                        f"return quantity for order item {oid} must be positive",
                        details=[{"type": "validation", "path": f"items[{i}]", "reason": "invalid_quantity", "order_item_id": oid}],
                    )
                requested[oid] = requested.get(oid, 0) + int(line.quantity)
                if requested[oid] > purchased[oid]:
                    raise ValidationError(
                        f"return quantity {requested[oid]} exceeds purchased {purchased[oid]} for order item {oid}",
                        details=[
                            {
                                "type": "validation",
                                "path": f"items[{i}]",
                                "reason": "quantity_exceeds_purchased",
                                "order_item_id": oid,
                                "purchased_qty": purchased[oid],
                            }
                        ],
                    )

            ret = Return(
                order_id=order_id,
                user_id=user_id,
                status=ReturnStatus.REQUESTED,
                reason=reason.strip(),
                images=images or None,
                items=[ReturnItem(order_item_id=oid, quantity=q) for oid, q in sorted(requested.items())],
            )
            session.add(ret)
            await session.flush()
            return_id = ret.id

        ret = await return_repo.get_return(session, return_id, refresh=True)
        await session.commit()
        log.info("return requested: id=%s order=%s user=%s", return_id, order_id, user_id)
        await self.notifier.notify_all_admins(
            NotificationType.RETURN_REQUEST,
            {"return_id": return_id, "order_id": order_id, "user_id": user_id},
        )
        return ret

    async def update_status(
        self,
        session: AsyncSession,
        *,
        return_id: str,
        new_status: str,
        actor_id: Optional[str] = None,
    ) -> Return:
        try:
            target = ReturnStatus(new_status)
        except ValueError:
            raise ValidationError(f"unknown return status {new_status!r}", reason="invalid_status")

        async with tx_commit(session):
            ret = await return_repo.get_return(session, return_id, refresh=True)
            if ret is None:
                raise NotFoundError(f"return {return_id} not found")
            current = ReturnStatus(ret.status)
            if current == target:
                return ret
            if current == ReturnStatus.COMPLETED:
                raise ValidationError(
                    f"return {return_id} is completed and cannot move to {target.value}",
                    reason="return_completed",
                )

            # the CAS excludes completed rows, so a racing completion is applied once
            if not await return_repo.set_status(session, return_id, target):
                log.info("return %s already completed concurrently", return_id)
                return await return_repo.get_return(session, return_id, refresh=True)

            if target == ReturnStatus.COMPLETED:
                await self._complete(session, ret, actor_id)

            ret = await return_repo.get_return(session, return_id, refresh=True)

        log.info("return %s: %s -> %s by %s", return_id, current.value, target.value, actor_id)
        kind = _NOTIFY.get(target)
        if kind is not None and ret.user_id:
            await self.notifier.notify(
                ret.user_id,
                kind,
                {"return_id": return_id, "order_id": ret.order_id, "status": target.value},
            )
        return ret

    async def _complete(self, session: AsyncSession, ret: Return, actor_id: Optional[str]) -> None:
        await order_repo.set_status(session, ret.order_id, OrderStatus.RETURNED)
        variant_ids = [ri.order_item.variant_id for ri in ret.items if ri.order_item.variant_id]
        tracked = await inventory_repo.existing_variant_ids(session, variant_ids)
        for ri in ret.items:
            variant_id = ri.order_item.variant_id
            if variant_id in tracked:
                await self.ledger.restore(
                    session,
                    variant_id,
                    ri.quantity,
                    ref=ret.id,
                    reason=f"return {ret.id} completed",
                    user_id=actor_id,
                )

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------
    async def get_return(self, session: AsyncSession, *, return_id: str, user: CurrentUser) -> Return:
        ret = await return_repo.get_return(session, return_id)
        if ret is None:
            raise NotFoundError(f"return {return_id} not found")
        if not user.is_admin and ret.user_id != user.id:
            raise UnauthorizedError(f"return {return_id} does not belong to the current user")
        return ret

    async def list_returns(
        self,
        session: AsyncSession,
        *,
        user: CurrentUser,
        status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Return]:
        owner = None if user.is_admin else user.id
        return await return_repo.list_returns(
            session, user_id=owner, status=status, limit=limit, offset=offset
        )
