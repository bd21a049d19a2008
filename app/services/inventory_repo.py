# app/services/inventory_repo.py
from __future__ import annotations

from typing import List, Optional

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import StockLevelStatus
from app.models.inventory import Inventory
from app.models.product import Product, ProductVariant
from app.models.stock_movement import StockMovement


async def get_inventory(session: AsyncSession, variant_id: str) -> Optional[Inventory]:
    stmt = sa.select(Inventory).where(Inventory.variant_id == variant_id)
    return (await session.execute(stmt)).scalars().first()


async def lock_inventory(session: AsyncSession, variant_id: str) -> Optional[Inventory]:
    """
    Row lock for read-modify-write (FOR UPDATE on PostgreSQL; SQLite is
    already serialised by BEGIN IMMEDIATE). populate_existing refreshes an
    instance that the identity map may hold from an earlier read.
    """
    stmt = (
        sa.select(Inventory)
        .where(Inventory.variant_id == variant_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return (await session.execute(stmt)).scalars().first()


async def existing_variant_ids(session: AsyncSession, variant_ids: List[str]) -> set[str]:
    if not variant_ids:
        return set()
    stmt = sa.select(Inventory.variant_id).where(Inventory.variant_id.in_(variant_ids))
    return set((await session.execute(stmt)).scalars().all())


def _status_filter(stmt, status: Optional[str]):
    if status == StockLevelStatus.OUT:
        return stmt.where(Inventory.stock_quantity == 0)
    if status == StockLevelStatus.LOW:
        return stmt.where(
            Inventory.stock_quantity > 0,
            Inventory.stock_quantity <= Inventory.safety_stock,
        )
    if status == StockLevelStatus.NORMAL:
        return stmt.where(Inventory.stock_quantity > Inventory.safety_stock)
    return stmt


async def list_inventory(
    session: AsyncSession,
    *,
    status: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
) -> List[Inventory]:
    stmt = _status_filter(sa.select(Inventory), status)
    stmt = stmt.order_by(Inventory.variant_id.asc()).limit(limit).offset(offset)
    return list((await session.execute(stmt)).scalars().all())


async def inventory_stats(session: AsyncSession) -> dict:
    """Counts plus on-hand value at the current unit price (base + variant extra)."""
    unit_price = Product.price_cents + ProductVariant.additional_price_cents
    stmt = (
        sa.select(
            sa.func.count(Inventory.id),
            sa.func.coalesce(
                sa.func.sum(
                    sa.case(
                        (
                            sa.and_(
                                Inventory.stock_quantity > 0,
                                Inventory.stock_quantity <= Inventory.safety_stock,
                            ),
                            1,
                        ),
                        else_=0,
                    )
                ),
                0,
            ),
            sa.func.coalesce(
                sa.func.sum(sa.case((Inventory.stock_quantity == 0, 1), else_=0)), 0
            ),
            sa.func.coalesce(sa.func.sum(Inventory.stock_quantity * unit_price), 0),
        )
        .select_from(Inventory)
        .join(ProductVariant, ProductVariant.id == Inventory.variant_id)
        .join(Product, Product.id == ProductVariant.product_id)
    )
    total, low, out, value = (await session.execute(stmt)).one()
    return {
        "total_sku": int(total or 0),
        "low_stock_count": int(low or 0),
        "out_of_stock_count": int(out or 0),
        "total_value_cents": int(value or 0),
    }


async def add_movement(session: AsyncSession, movement: StockMovement) -> StockMovement:
    session.add(movement)
    await session.flush()
    return movement


async def list_movements(
    session: AsyncSession,
    *,
    variant_id: Optional[str] = None,
    ref: Optional[str] = None,
    action: Optional[str] = None,
    limit: int = 100,
) -> List[StockMovement]:
    stmt = sa.select(StockMovement)
    if variant_id is not None:
        stmt = stmt.where(StockMovement.variant_id == variant_id)
    if ref is not None:
        stmt = stmt.where(StockMovement.ref == ref)
    if action is not None:
        stmt = stmt.where(StockMovement.action == action)
    stmt = stmt.order_by(StockMovement.id.desc()).limit(limit)
    return list((await session.execute(stmt)).scalars().all())
