# app/api/routers/inventory.py
from __future__ import annotations

from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.adapters.auth_client import CurrentUser
from app.api.deps import get_container, get_session, require_admin
from app.core.container import Container
from app.core.tx import tx_commit
from app.schemas.inventory import (
    InventoryLevelOut,
    InventoryStatsOut,
    StockAdjustIn,
    StockMovementOut,
    ThresholdIn,
)
from app.services.inventory_ledger import to_level

router = APIRouter(prefix="/inventory", tags=["inventory"])


@router.get("", response_model=List[InventoryLevelOut])
async def list_inventory(
    status: Optional[Literal["low", "out", "normal"]] = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    _admin: CurrentUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
    container: Container = Depends(get_container),
):
    levels = await container.ledger.list_levels(session, status=status, limit=limit, offset=offset)
    return [InventoryLevelOut.model_validate(lv) for lv in levels]


@router.get("/stats", response_model=InventoryStatsOut)
async def inventory_stats(
    _admin: CurrentUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
    container: Container = Depends(get_container),
):
    return InventoryStatsOut(**(await container.ledger.stats(session)))


@router.get("/movements", response_model=List[StockMovementOut])
async def all_movements(
    limit: int = Query(default=100, ge=1, le=500),
    _admin: CurrentUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
    container: Container = Depends(get_container),
):
    rows = await container.ledger.all_movements(session, limit=limit)
    return [StockMovementOut.model_validate(m) for m in rows]


@router.get("/{variant_id}", response_model=InventoryLevelOut)
async def get_inventory(
    variant_id: str,
    _admin: CurrentUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
    container: Container = Depends(get_container),
):
    return InventoryLevelOut.model_validate(await container.ledger.get_level(session, variant_id))


@router.get("/{variant_id}/movements", response_model=List[StockMovementOut])
async def variant_movements(
    variant_id: str,
    limit: int = Query(default=50, ge=1, le=500),
    _admin: CurrentUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
    container: Container = Depends(get_container),
):
    rows = await container.ledger.movements(session, variant_id, limit=limit)
    return [StockMovementOut.model_validate(m) for m in rows]


@router.patch("/{variant_id}/stock", response_model=InventoryLevelOut)
async def adjust_stock(
    variant_id: str,
    payload: StockAdjustIn,
    admin: CurrentUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
    container: Container = Depends(get_container),
):
    async with tx_commit(session):
        await container.ledger.adjust(
            session,
            variant_id,
            payload.type,
            payload.quantity,
            reason=payload.reason,
            user_id=admin.id,
        )
    return InventoryLevelOut.model_validate(await container.ledger.get_level(session, variant_id))


@router.patch("/{variant_id}/threshold", response_model=InventoryLevelOut)
async def update_threshold(
    variant_id: str,
    payload: ThresholdIn,
    _admin: CurrentUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
    container: Container = Depends(get_container),
):
    async with tx_commit(session):
        inv = await container.ledger.update_threshold(session, variant_id, payload.safety_stock)
        level = to_level(inv)
    return InventoryLevelOut.model_validate(level)
