# app/services/coupon_repo.py
from __future__ import annotations

from typing import Optional

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.coupon import Coupon


async def get_by_code(session: AsyncSession, code: str) -> Optional[Coupon]:
    stmt = sa.select(Coupon).where(Coupon.code == code)
    return (await session.execute(stmt)).scalars().first()
