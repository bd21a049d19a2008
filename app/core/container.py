# app/core/container.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from app.adapters.auth_client import AuthClient
from app.adapters.payment_gateway import MidtransGateway, PaymentGateway
from app.core.config import AppSettings
from app.core.scheduler import PaymentScheduler
from app.db.base import init_models
from app.db.session import build_engine, build_session_maker
from app.services.coupon_service import CouponService
from app.services.inventory_ledger import InventoryLedger
from app.services.notification_service import NotificationService, Notifier
from app.services.order_service import OrderService
from app.services.order_status_service import OrderStatusService
from app.services.payment_reconcile import PaymentReconciler
from app.services.payment_service import PaymentService
from app.services.return_service import ReturnService
from app.services.segment_service import SegmentService

log = logging.getLogger("backoffice")


@dataclass
class Container:
    """Process-wide collaborators, built once at startup and passed down explicitly."""

    settings: AppSettings
    engine: AsyncEngine
    session_maker: async_sessionmaker[AsyncSession]
    gateway: PaymentGateway
    auth: AuthClient
    notifier: Notifier
    ledger: InventoryLedger
    orders: OrderService
    order_status: OrderStatusService
    reconciler: PaymentReconciler
    payments: PaymentService
    returns: ReturnService
    scheduler: PaymentScheduler

    async def aclose(self) -> None:
        self.scheduler.stop()
        await self.gateway.aclose()
        await self.auth.aclose()
        await self.engine.dispose()


def build_container(
    settings: AppSettings,
    *,
    engine: Optional[AsyncEngine] = None,
    gateway: Optional[PaymentGateway] = None,
    auth: Optional[AuthClient] = None,
    notifier: Optional[Notifier] = None,
) -> Container:
    init_models()
    engine = engine or build_engine(settings.DATABASE_URL, echo=settings.SQL_ECHO)
    session_maker = build_session_maker(engine)

    gateway = gateway or MidtransGateway(
        server_key=settings.MIDTRANS_SERVER_KEY,
        is_production=settings.MIDTRANS_IS_PRODUCTION,
        timeout=settings.GATEWAY_TIMEOUT_SECONDS,
    )
    auth = auth or AuthClient(
        base_url=settings.AUTH_SERVICE_URL,
        session_path=settings.AUTH_SESSION_PATH,
        timeout=settings.AUTH_TIMEOUT_SECONDS,
    )
    notifier = notifier or NotificationService(session_maker)

    ledger = InventoryLedger()
    reconciler = PaymentReconciler(
        session_maker=session_maker,
        gateway=gateway,
        ledger=ledger,
        notifier=notifier,
        gateway_timezone=settings.GATEWAY_TIMEZONE,
        unissued_grace_seconds=settings.PAYMENT_UNISSUED_GRACE_SECONDS,
    )
    return Container(
        settings=settings,
        engine=engine,
        session_maker=session_maker,
        gateway=gateway,
        auth=auth,
        notifier=notifier,
        ledger=ledger,
        orders=OrderService(
            settings=settings,
            ledger=ledger,
            coupons=CouponService(),
            gateway=gateway,
            notifier=notifier,
        ),
        order_status=OrderStatusService(ledger=ledger, notifier=notifier, segments=SegmentService()),
        reconciler=reconciler,
        payments=PaymentService(gateway=gateway, reconciler=reconciler),
        returns=ReturnService(ledger=ledger, notifier=notifier, window_days=settings.RETURN_WINDOW_DAYS),
        scheduler=PaymentScheduler(
            reconciler, interval_seconds=settings.PAYMENT_RECONCILE_INTERVAL_SECONDS
        ),
    )
