# app/services/payment_repo.py
from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Tuple

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import PaymentStatus
from app.models.order import Order
from app.models.payment import Payment


async def get_by_order(session: AsyncSession, order_id: str) -> Optional[Payment]:
    stmt = sa.select(Payment).where(Payment.order_id == order_id)
    return (await session.execute(stmt)).scalars().first()


async def list_pending_with_owner(session: AsyncSession, *, limit: int | None = None) -> List[Tuple[str, str]]:
    """(order_id, user_id) for every payment still pending."""
    stmt = (
        sa.select(Payment.order_id, Order.user_id)
        .join(Order, Order.id == Payment.order_id)
        .where(Payment.status == PaymentStatus.PENDING)
        .order_by(Payment.created_at.asc(), Payment.order_id)
    )
    if limit:
        stmt = stmt.limit(limit)
    rows = (await session.execute(stmt)).all()
    return [(str(r[0]), str(r[1])) for r in rows]


async def transition_from_pending(
    session: AsyncSession,
    order_id: str,
    *,
    to_status: str,
    paid_at: Optional[datetime],
    transaction_id: Optional[str] = None,
) -> bool:
    """
    Compare-and-set pending -> to_status. False means another worker already
    resolved this payment and the caller must not touch stock.
    """
    values = {"status": to_status, "paid_at": paid_at}
    if transaction_id:
        values["gateway_transaction_id"] = transaction_id
    stmt = (
        sa.update(Payment)
        .where(Payment.order_id == order_id, Payment.status == PaymentStatus.PENDING)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    return (result.rowcount or 0) == 1


async def set_payment_token(session: AsyncSession, order_id: str, token: str) -> None:
    await session.execute(
        sa.update(Payment).where(Payment.order_id == order_id).values(payment_token=token)
    )
