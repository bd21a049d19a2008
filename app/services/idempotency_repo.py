# app/services/idempotency_repo.py
from __future__ import annotations

from typing import Optional

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.idempotency_key import IdempotencyKey


async def get_order_id(session: AsyncSession, key: str) -> Optional[str]:
    stmt = sa.select(IdempotencyKey.order_id).where(IdempotencyKey.key == key)
    return (await session.execute(stmt)).scalars().first()


async def claim(session: AsyncSession, key: str, order_id: str) -> None:
    """
    Insert key -> order_id and flush. A concurrent writer of the same key
    surfaces here as IntegrityError (first writer wins).
    """
    session.add(IdempotencyKey(key=key, order_id=order_id))
    await session.flush()
