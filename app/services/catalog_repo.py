# app/services/catalog_repo.py
from __future__ import annotations

from typing import Dict, Iterable, List, Optional

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import UserRole
from app.models.product import ProductVariant
from app.models.user import Segment, User


async def get_variants(session: AsyncSession, variant_ids: Iterable[str]) -> Dict[str, ProductVariant]:
    ids = sorted({str(v) for v in variant_ids})
    if not ids:
        return {}
    stmt = sa.select(ProductVariant).where(ProductVariant.id.in_(ids))
    rows = (await session.execute(stmt)).scalars().all()
    return {v.id: v for v in rows}


async def get_user(session: AsyncSession, user_id: str) -> Optional[User]:
    return await session.get(User, user_id)


async def list_admin_ids(session: AsyncSession) -> List[str]:
    stmt = sa.select(User.id).where(User.role == UserRole.ADMIN).order_by(User.id)
    return list((await session.execute(stmt)).scalars().all())


async def list_active_segments(session: AsyncSession) -> List[Segment]:
    """Active tiers, highest threshold first."""
    stmt = (
        sa.select(Segment)
        .where(Segment.is_active.is_(True))
        .order_by(Segment.min_spend_cents.desc(), Segment.id)
    )
    return list((await session.execute(stmt)).scalars().all())


async def set_user_segment(
    session: AsyncSession, user_id: str, *, segment_id: Optional[int], lifetime_spent_cents: int
) -> None:
    await session.execute(
        sa.update(User)
        .where(User.id == user_id)
        .values(segment_id=segment_id, lifetime_spent_cents=lifetime_spent_cents)
        .execution_options(synchronize_session=False)
    )
