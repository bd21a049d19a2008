# app/services/payment_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.adapters.auth_client import CurrentUser
from app.adapters.payment_gateway import GatewayError, GatewayStatus, PaymentGateway
from app.api.errors import NotFoundError, UnauthorizedError, UpstreamError
from app.models.enums import PaymentStatus
from app.obs.metrics import gateway_errors_total
from app.services import order_repo, payment_repo
from app.services.payment_reconcile import Outcome, PaymentReconciler

log = logging.getLogger("backoffice.payment")


@dataclass
class PaymentStatusView:
    order_id: str
    transaction_status: Optional[str]
    payment_status: str
    outcome: Optional[str]
    gateway: Dict[str, Any]


class PaymentService:
    """
    Direct status check for one order: proxy the gateway state and, when the
    local payment is still pending and the state is terminal, apply the same
    settle/cancel the scheduler would (same CAS guard).
    """

    def __init__(self, *, gateway: PaymentGateway, reconciler: PaymentReconciler):
        self.gateway = gateway
        self.reconciler = reconciler

    async def status(self, session: AsyncSession, *, order_id: str, user: CurrentUser) -> PaymentStatusView:
        order = await order_repo.get_order(session, order_id)
        if order is None:
            raise NotFoundError(f"order {order_id} not found")
        if not user.is_admin and order.user_id != user.id:
            raise UnauthorizedError(f"order {order_id} does not belong to the current user")
        payment = await payment_repo.get_by_order(session, order_id)
        pending = payment is not None and payment.status == PaymentStatus.PENDING
        # no transaction held across the gateway call; the reconciler writes through its own session
        await session.commit()

        try:
            gw: GatewayStatus = await self.gateway.get_status(order_id)
        except GatewayError as exc:
            gateway_errors_total.labels("get_status", str(exc.status_code or "transport")).inc()
            if exc.status_code == 404:
                raise NotFoundError(f"payment for order {order_id} not found at gateway")
            log.warning("gateway status proxy failed for %s: %s", order_id, exc.message)
            raise UpstreamError(f"payment gateway error: {exc.message}")

        outcome: Optional[Outcome] = None
        if pending:
            outcome = await self.reconciler.apply_status(order_id, gw)
            session.expire_all()
            payment = await payment_repo.get_by_order(session, order_id)
        return PaymentStatusView(
            order_id=order_id,
            transaction_status=gw.transaction_status,
            payment_status=payment.status if payment is not None else "unknown",
            outcome=outcome.value if outcome is not None else None,
            gateway=gw.raw,
        )
