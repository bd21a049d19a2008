# app/services/return_repo.py
from __future__ import annotations

from typing import List, Optional

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import CLOSED_RETURN_STATUSES, ReturnStatus
from app.models.return_record import Return


async def get_return(session: AsyncSession, return_id: str, *, refresh: bool = False) -> Optional[Return]:
    stmt = sa.select(Return).where(Return.id == return_id)
    if refresh:
        stmt = stmt.execution_options(populate_existing=True)
    return (await session.execute(stmt)).scalars().first()


async def find_active_for_order(session: AsyncSession, order_id: str) -> Optional[Return]:
    stmt = sa.select(Return).where(
        Return.order_id == order_id,
        Return.status.not_in([s.value for s in CLOSED_RETURN_STATUSES]),
    )
    return (await session.execute(stmt)).scalars().first()


async def list_returns(
    session: AsyncSession,
    *,
    user_id: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[Return]:
    stmt = sa.select(Return)
    if user_id is not None:
        stmt = stmt.where(Return.user_id == user_id)
    if status is not None:
        stmt = stmt.where(Return.status == status)
    stmt = stmt.order_by(Return.created_at.desc(), Return.id).limit(limit).offset(offset)
    return list((await session.execute(stmt)).scalars().all())


async def set_status(session: AsyncSession, return_id: str, status: str) -> bool:
    """Plain transition; never moves a completed return."""
    stmt = (
        sa.update(Return)
        .where(Return.id == return_id, Return.status != ReturnStatus.COMPLETED)
        .values(status=status)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    return (result.rowcount or 0) == 1
