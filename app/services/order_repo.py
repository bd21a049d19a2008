# app/services/order_repo.py
from __future__ import annotations

from typing import List, Optional

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import OrderStatus
from app.models.order import Order


async def get_order(session: AsyncSession, order_id: str, *, refresh: bool = False) -> Optional[Order]:
    stmt = sa.select(Order).where(Order.id == order_id)
    if refresh:
        stmt = stmt.execution_options(populate_existing=True)
    return (await session.execute(stmt)).scalars().first()


async def list_orders(
    session: AsyncSession,
    *,
    user_id: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[Order]:
    stmt = sa.select(Order)
    if user_id is not None:
        stmt = stmt.where(Order.user_id == user_id)
    if status is not None:
        stmt = stmt.where(Order.status == status)
    stmt = stmt.order_by(Order.created_at.desc(), Order.id).limit(limit).offset(offset)
    return list((await session.execute(stmt)).scalars().all())


async def set_status(session: AsyncSession, order_id: str, status: str) -> None:
    await session.execute(sa.update(Order).where(Order.id == order_id).values(status=status))


async def count_coupon_usage(session: AsyncSession, code: str) -> int:
    """Orders that used `code`, cancelled ones excluded."""
    stmt = sa.select(sa.func.count(Order.id)).where(
        Order.coupon_code == code,
        Order.status != OrderStatus.CANCELLED,
    )
    return int((await session.execute(stmt)).scalar_one())


async def transition_status(session: AsyncSession, order_id: str, *, from_status: str, to_status: str) -> bool:
    """Compare-and-set on orders.status; False when someone else moved it first."""
    stmt = (
        sa.update(Order)
        .where(Order.id == order_id, Order.status == from_status)
        .values(status=to_status)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    return (result.rowcount or 0) == 1


# paid and not undone: cancelled / returned / pending orders do not count
SPEND_STATUSES = (
    OrderStatus.PROCESSING,
    OrderStatus.READY,
    OrderStatus.SHIPPED,
    OrderStatus.IN_TRANSIT,
    OrderStatus.DELIVERED,
)


async def lifetime_spend(session: AsyncSession, user_id: str) -> int:
    stmt = sa.select(sa.func.coalesce(sa.func.sum(Order.total_cents), 0)).where(
        Order.user_id == user_id,
        Order.status.in_([s.value for s in SPEND_STATUSES]),
    )
    return int((await session.execute(stmt)).scalar_one())
