# app/services/order_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.adapters.auth_client import CurrentUser
from app.adapters.payment_gateway import GatewayError, GatewayToken, PaymentGateway
from app.api.errors import (
    ConflictError,
    InsufficientStockError,
    NotFoundError,
    UnauthorizedError,
    UpstreamError,
    ValidationError,
)
from app.core.config import AppSettings
from app.core.tx import tx_commit
from app.models.enums import NotificationType, OrderStatus, PaymentStatus, ShipmentStatus
from app.models.order import Order, new_id
from app.models.order_item import OrderItem
from app.models.payment import Payment
from app.models.shipment import Shipment
from app.models.user import User
from app.obs.metrics import gateway_errors_total, order_create_total
from app.services import catalog_repo, idempotency_repo, order_repo, payment_repo
from app.services.coupon_service import CouponService
from app.services.inventory_ledger import InventoryLedger
from app.services.notification_service import Notifier
from app.services.pricing import PricedLine, compute_totals, shipping_for

log = logging.getLogger("backoffice.orders")


@dataclass(frozen=True)
class LineRequest:
    variant_id: str
    quantity: int


@dataclass
class OrderCreateResult:
    order: Order
    payment: Optional[GatewayToken] = None
    idempotent: bool = False


def merge_lines(items: Sequence[LineRequest]) -> List[LineRequest]:
    """Collapse repeated variants and sort by variant id (lock order)."""
    qty: Dict[str, int] = {}
    for it in items:
        if int(it.quantity) <= 0:
            raise ValidationError(
                f"quantity for variant {it.variant_id} must be positive", reason="invalid_quantity"
            )
        qty[str(it.variant_id)] = qty.get(str(it.variant_id), 0) + int(it.quantity)
    return [LineRequest(variant_id=v, quantity=q) for v, q in sorted(qty.items())]


class OrderService:
    """
    Order creation + order queries.

    create():
      1) idempotency pre-check (key already mapped -> existing order, nothing else happens)
      2) resolve variants, price lines, validate coupon, compute totals
      3) one transaction: order header, idempotency key, reservations (variant order),
         items, payment(pending), shipment(ready)
      4) after commit: gateway token (failure keeps the order pending and payable)
      5) after commit: notifications
    """

    def __init__(
        self,
        *,
        settings: AppSettings,
        ledger: InventoryLedger,
        coupons: CouponService,
        gateway: PaymentGateway,
        notifier: Notifier,
    ):
        self.settings = settings
        self.ledger = ledger
        self.coupons = coupons
        self.gateway = gateway
        self.notifier = notifier

    # ------------------------------------------------------------------
    # create
    # ------------------------------------------------------------------
    async def create(
        self,
        session: AsyncSession,
        *,
        user_id: str,
        items: Sequence[LineRequest],
        shipping_address: Optional[Dict[str, Any]] = None,
        shipment_method_id: Optional[int] = None,
        coupon_code: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> OrderCreateResult:
        if not items:
            raise ValidationError("order must contain at least one item", reason="empty_order")
        key = (idempotency_key or "").strip() or None

        if key is not None:
            existing = await self._order_for_key(session, key, user_id)
            if existing is not None:
                order_create_total.labels("idempotent").inc()
                log.info("idempotent replay: key=%s order=%s", key, existing.id)
                return OrderCreateResult(order=existing, idempotent=True)

        lines = merge_lines(items)
        user = await catalog_repo.get_user(session, user_id)
        if user is None:
            raise NotFoundError(f"user {user_id} not found")

        priced = await self._price_lines(session, lines)
        subtotal = sum(p.total_price_cents for p in priced)

        coupon_discount = 0
        code = (coupon_code or "").strip() or None
        if code is not None:
            try:
                cd = await self.coupons.validate(
                    session, code=code, subtotal_cents=subtotal, segment_id=user.segment_id
                )
            except ValidationError:
                order_create_total.labels("rejected").inc()
                raise
            code, coupon_discount = cd.code, cd.discount_cents

        totals = compute_totals(
            priced,
            tax_rate_bp=self.settings.TAX_RATE_BP,
            shipping_cents=shipping_for(shipment_method_id, self.settings.SHIPPING_RATES),
            segment_discount_percent=user.segment.discount_percent if user.segment else 0,
            coupon_discount_cents=coupon_discount,
        )

        order_id = new_id()
        try:
            async with tx_commit(session):
                session.add(
                    Order(
                        id=order_id,
                        user_id=user_id,
                        status=OrderStatus.PENDING,
                        subtotal_cents=totals.subtotal_cents,
                        discount_cents=totals.discount_cents,
                        tax_cents=totals.tax_cents,
                        shipping_cents=totals.shipping_cents,
                        total_cents=totals.total_cents,
                        currency=self.settings.CURRENCY,
                        coupon_code=code,
                        shipping_address=shipping_address,
                    )
                )
                await session.flush()
                if key is not None:
                    await idempotency_repo.claim(session, key, order_id)

                for p in priced:
                    await self.ledger.reserve(
                        session,
                        p.variant_id,
                        p.quantity,
                        ref=order_id,
                        reason=f"order {order_id}",
                        user_id=user_id,
                    )

                session.add_all(
                    [
                        OrderItem(
                            order_id=order_id,
                            variant_id=p.variant_id,
                            sku=p.sku,
                            title=p.title,
                            unit_price_cents=p.unit_price_cents,
                            quantity=p.quantity,
                            total_price_cents=p.total_price_cents,
                        )
                        for p in priced
                    ]
                )
                session.add(
                    Payment(
                        order_id=order_id,
                        provider=self.settings.PAYMENT_PROVIDER,
                        status=PaymentStatus.PENDING,
                        amount_cents=totals.total_cents,
                        currency=self.settings.CURRENCY,
                    )
                )
                session.add(
                    Shipment(
                        order_id=order_id,
                        shipment_method_id=shipment_method_id,
                        status=ShipmentStatus.READY,
                    )
                )
        except InsufficientStockError as exc:
            order_create_total.labels("insufficient_stock").inc()
            log.info("order rejected, insufficient stock: variant=%s", exc.variant_id)
            raise
        except IntegrityError:
            if key is None:
                raise
            # lost the race for this key: the winner's order is the answer
            existing = await self._order_for_key(session, key, user_id)
            if existing is None:
                raise
            order_create_total.labels("idempotent").inc()
            return OrderCreateResult(order=existing, idempotent=True)

        order_create_total.labels("created").inc()
        order = await order_repo.get_order(session, order_id, refresh=True)
        log.info("order created: id=%s user=%s total=%s", order_id, user_id, totals.total_cents)

        token = await self._try_issue_token(session, order, user)

        await self.notifier.notify(
            user_id,
            NotificationType.ORDER_CREATED,
            {"order_id": order_id, "total_cents": totals.total_cents},
        )
        await self.notifier.notify_all_admins(
            NotificationType.NEW_ORDER,
            {"order_id": order_id, "user_id": user_id, "total_cents": totals.total_cents},
        )
        return OrderCreateResult(order=order, payment=token)

    async def _order_for_key(self, session: AsyncSession, key: str, user_id: str) -> Optional[Order]:
        order_id = await idempotency_repo.get_order_id(session, key)
        if order_id is None:
            return None
        order = await order_repo.get_order(session, order_id)
        if order is not None and order.user_id != user_id:
            order_create_total.labels("rejected").inc()
            log.warning("idempotency key %s is mapped to another user's order, caller=%s", key, user_id)
            raise ConflictError(
                "idempotency key is already used by another order", reason="idempotency_key_conflict"
            )
        return order

    async def _price_lines(self, session: AsyncSession, lines: Sequence[LineRequest]) -> List[PricedLine]:
        variants = await catalog_repo.get_variants(session, [ln.variant_id for ln in lines])
        missing = [ln.variant_id for ln in lines if ln.variant_id not in variants]
        if missing:
            raise NotFoundError(
                f"variant(s) not found: {', '.join(missing)}",
                details=[{"type": "state", "reason": "variant_not_found", "variant_id": v} for v in missing],
            )
        out: List[PricedLine] = []
        for ln in lines:
            v = variants[ln.variant_id]
            out.append(
                PricedLine(
                    variant_id=v.id,
                    sku=v.sku,
                    title=v.title,
                    unit_price_cents=v.unit_price_cents,
                    quantity=ln.quantity,
                )
            )
        return out

    # ------------------------------------------------------------------
    # gateway token
    # ------------------------------------------------------------------
    def build_gateway_payload(self, order: Order, user: Optional[User]) -> Dict[str, Any]:
        """Snap transaction request; item_details add up to gross_amount."""
        item_details: List[Dict[str, Any]] = [
            {
                "id": it.variant_id or it.sku,
                "price": int(it.unit_price_cents),
                "quantity": int(it.quantity),
                "name": it.title[:50],
            }
            for it in order.items
        ]
        if order.shipping_cents:
            item_details.append({"id": "SHIPPING", "price": int(order.shipping_cents), "quantity": 1, "name": "Shipping"})
        if order.tax_cents:
            item_details.append({"id": "TAX", "price": int(order.tax_cents), "quantity": 1, "name": "Tax"})
        if order.discount_cents:
            item_details.append(
                {"id": "DISCOUNT", "price": -int(order.discount_cents), "quantity": 1, "name": "Discount"}
            )

        finish_url = f"{self.settings.CLIENT_ORIGIN.rstrip('/')}/order?order_id={order.id}"
        payload: Dict[str, Any] = {
            "transaction_details": {"order_id": order.id, "gross_amount": int(order.total_cents)},
            "item_details": item_details,
            "callbacks": {"finish": finish_url, "error": finish_url, "pending": finish_url},
        }
        if user is not None:
            payload["customer_details"] = {"first_name": user.name, "email": user.email}
        return payload

    async def _issue_token(self, session: AsyncSession, order: Order, user: Optional[User]) -> GatewayToken:
        payload = self.build_gateway_payload(order, user)
        if session.in_transaction():
            # no transaction held across the gateway call
            await session.commit()
        token = await self.gateway.create_transaction(payload)
        async with tx_commit(session):
            await payment_repo.set_payment_token(session, order.id, token.token)
        return token

    async def _try_issue_token(self, session: AsyncSession, order: Order, user: User) -> Optional[GatewayToken]:
        try:
            return await self._issue_token(session, order, user)
        except GatewayError as exc:
            gateway_errors_total.labels("create_transaction", str(exc.status_code or "transport")).inc()
            log.warning(
                "payment token failed, order %s stays pending: status=%s err=%s",
                order.id,
                exc.status_code,
                exc.message,
            )
            return None

    async def issue_payment_token(
        self, session: AsyncSession, *, order_id: str, user: CurrentUser
    ) -> GatewayToken:
        """Retry path for an order whose token step failed or expired client-side."""
        order = await self.get_order(session, order_id=order_id, user=user)
        payment = order.payment
        if order.status != OrderStatus.PENDING or payment is None or payment.status != PaymentStatus.PENDING:
            raise ValidationError(f"order {order_id} is not awaiting payment", reason="order_not_payable")
        owner = await catalog_repo.get_user(session, order.user_id)
        try:
            return await self._issue_token(session, order, owner)
        except GatewayError as exc:
            gateway_errors_total.labels("create_transaction", str(exc.status_code or "transport")).inc()
            raise UpstreamError(f"payment gateway unavailable: {exc.message}")

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------
    async def get_order(self, session: AsyncSession, *, order_id: str, user: CurrentUser) -> Order:
        order = await order_repo.get_order(session, order_id)
        if order is None:
            raise NotFoundError(f"order {order_id} not found")
        if not user.is_admin and order.user_id != user.id:
            raise UnauthorizedError(f"order {order_id} does not belong to the current user")
        return order

    async def list_orders(
        self,
        session: AsyncSession,
        *,
        user: CurrentUser,
        status: Optional[str] = None,
        user_id: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Order]:
        owner = user_id if user.is_admin else user.id
        return await order_repo.list_orders(
            session, user_id=owner, status=status, limit=limit, offset=offset
        )
