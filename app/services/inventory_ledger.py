# app/services/inventory_ledger.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.api.errors import InsufficientStockError, NotFoundError, ValidationError
from app.models.enums import AdjustKind, MovementAction, StockLevelStatus
from app.models.inventory import Inventory
from app.models.stock_movement import StockMovement
from app.obs.metrics import inventory_movement_total
from app.services import inventory_repo

log = logging.getLogger("backoffice.inventory")


@dataclass(frozen=True)
class InventoryLevel:
    variant_id: str
    sku: Optional[str]
    title: Optional[str]
    stock_quantity: int
    reserved_quantity: int
    available_quantity: int
    safety_stock: int
    status: str


def level_status(stock_quantity: int, safety_stock: int) -> str:
    if stock_quantity == 0:
        return StockLevelStatus.OUT
    if stock_quantity <= safety_stock:
        return StockLevelStatus.LOW
    return StockLevelStatus.NORMAL


def to_level(inv: Inventory) -> InventoryLevel:
    variant = inv.variant
    return InventoryLevel(
        variant_id=inv.variant_id,
        sku=variant.sku if variant is not None else None,
        title=variant.title if variant is not None else None,
        stock_quantity=int(inv.stock_quantity),
        reserved_quantity=int(inv.reserved_quantity),
        available_quantity=int(inv.stock_quantity) - int(inv.reserved_quantity),
        safety_stock=int(inv.safety_stock),
        status=level_status(int(inv.stock_quantity), int(inv.safety_stock)),
    )


class InventoryLedger:
    """
    Per-variant stock counters + append-only movement log.

    Every mutating method:
      - runs inside the caller's transaction (never begins/commits itself)
      - locks the inventory row before reading the counters
      - appends exactly one StockMovement

    reserve:  reserved += q, requires stock - reserved >= q     (RESERVE)
    commit:   stock -= q, reserved -= q, both floored at 0      (STOCK_COMMITTED)
    release:  reserved -= q, floored at 0                       (STOCK_UNRESERVE)
    adjust:   add / remove (floor 0) / set on stock             (STOCK_ADD|REMOVE|SET)
    restore:  stock += q                                        (STOCK_ADD)
    """

    async def _locked(self, session: AsyncSession, variant_id: str) -> Inventory:
        inv = await inventory_repo.lock_inventory(session, variant_id)
        if inv is None:
            raise NotFoundError(f"inventory for variant {variant_id} not found")
        return inv

    @staticmethod
    def _check_qty(qty: int, *, allow_zero: bool = False) -> int:
        q = int(qty)
        if q < 0 or (q == 0 and not allow_zero):
            raise ValidationError(f"quantity must be positive, got {qty}", reason="invalid_quantity")
        return q

    async def _apply(
        self,
        session: AsyncSession,
        inv: Inventory,
        *,
        action: MovementAction,
        new_stock: int,
        new_reserved: int,
        quantity_change: int,
        reason: Optional[str],
        ref: Optional[str],
        user_id: Optional[str],
    ) -> StockMovement:
        movement = StockMovement(
            variant_id=inv.variant_id,
            action=action.value,
            quantity_change=int(quantity_change),
            previous_quantity=int(inv.stock_quantity),
            new_quantity=int(new_stock),
            previous_reserved=int(inv.reserved_quantity),
            new_reserved=int(new_reserved),
            reason=reason,
            ref=ref,
            user_id=user_id,
        )
        inv.stock_quantity = int(new_stock)
        inv.reserved_quantity = int(new_reserved)
        await inventory_repo.add_movement(session, movement)
        inventory_movement_total.labels(action.value).inc()
        return movement

    # ------------------------------------------------------------------
    # order pipeline
    # ------------------------------------------------------------------
    async def reserve(
        self,
        session: AsyncSession,
        variant_id: str,
        qty: int,
        *,
        ref: Optional[str] = None,
        reason: str = "order created",
        user_id: Optional[str] = None,
    ) -> StockMovement:
        q = self._check_qty(qty)
        inv = await self._locked(session, variant_id)
        available = int(inv.stock_quantity) - int(inv.reserved_quantity)
        if available < q:
            raise InsufficientStockError(variant_id, requested=q, available=max(available, 0))
        return await self._apply(
            session,
            inv,
            action=MovementAction.RESERVE,
            new_stock=inv.stock_quantity,
            new_reserved=inv.reserved_quantity + q,
            quantity_change=q,
            reason=reason,
            ref=ref,
            user_id=user_id,
        )

    async def commit(
        self,
        session: AsyncSession,
        variant_id: str,
        qty: int,
        *,
        ref: Optional[str] = None,
        reason: str = "payment settled",
    ) -> StockMovement:
        q = self._check_qty(qty)
        inv = await self._locked(session, variant_id)
        if inv.stock_quantity < q or inv.reserved_quantity < q:
            log.warning(
                "commit below zero clamped: variant=%s qty=%s stock=%s reserved=%s ref=%s",
                variant_id,
                q,
                inv.stock_quantity,
                inv.reserved_quantity,
                ref,
            )
        new_stock = max(inv.stock_quantity - q, 0)
        return await self._apply(
            session,
            inv,
            action=MovementAction.STOCK_COMMITTED,
            new_stock=new_stock,
            new_reserved=max(inv.reserved_quantity - q, 0),
            quantity_change=new_stock - inv.stock_quantity,
            reason=reason,
            ref=ref,
            user_id=None,
        )

    async def release(
        self,
        session: AsyncSession,
        variant_id: str,
        qty: int,
        *,
        ref: Optional[str] = None,
        reason: str = "payment cancelled",
        user_id: Optional[str] = None,
    ) -> StockMovement:
        q = self._check_qty(qty)
        inv = await self._locked(session, variant_id)
        new_reserved = max(inv.reserved_quantity - q, 0)
        return await self._apply(
            session,
            inv,
            action=MovementAction.STOCK_UNRESERVE,
            new_stock=inv.stock_quantity,
            new_reserved=new_reserved,
            quantity_change=new_reserved - inv.reserved_quantity,
            reason=reason,
            ref=ref,
            user_id=user_id,
        )

    async def restore(
        self,
        session: AsyncSession,
        variant_id: str,
        qty: int,
        *,
        ref: Optional[str] = None,
        reason: str = "return completed",
        user_id: Optional[str] = None,
    ) -> StockMovement:
        q = self._check_qty(qty)
        inv = await self._locked(session, variant_id)
        return await self._apply(
            session,
            inv,
            action=MovementAction.STOCK_ADD,
            new_stock=inv.stock_quantity + q,
            new_reserved=inv.reserved_quantity,
            quantity_change=q,
            reason=reason,
            ref=ref,
            user_id=user_id,
        )

    # ------------------------------------------------------------------
    # admin
    # ------------------------------------------------------------------
    async def adjust(
        self,
        session: AsyncSession,
        variant_id: str,
        kind: str,
        qty: int,
        *,
        reason: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> StockMovement:
        try:
            k = AdjustKind(kind)
        except ValueError:
            raise ValidationError(f"unknown adjustment type {kind!r}", reason="invalid_adjust_type")
        q = self._check_qty(qty, allow_zero=k is AdjustKind.SET)
        inv = await self._locked(session, variant_id)

        if k is AdjustKind.ADD:
            action, new_stock = MovementAction.STOCK_ADD, inv.stock_quantity + q
        elif k is AdjustKind.REMOVE:
            action, new_stock = MovementAction.STOCK_REMOVE, max(inv.stock_quantity - q, 0)
        else:
            action, new_stock = MovementAction.STOCK_SET, q

        return await self._apply(
            session,
            inv,
            action=action,
            new_stock=new_stock,
            new_reserved=inv.reserved_quantity,
            quantity_change=new_stock - inv.stock_quantity,
            reason=reason or f"manual {k.value}",
            ref=None,
            user_id=user_id,
        )

    async def update_threshold(self, session: AsyncSession, variant_id: str, safety_stock: int) -> Inventory:
        value = self._check_qty(safety_stock, allow_zero=True)
        inv = await self._locked(session, variant_id)
        inv.safety_stock = value
        await session.flush()
        return inv

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------
    async def get_level(self, session: AsyncSession, variant_id: str) -> InventoryLevel:
        inv = await inventory_repo.get_inventory(session, variant_id)
        if inv is None:
            raise NotFoundError(f"inventory for variant {variant_id} not found")
        return to_level(inv)

    async def list_levels(
        self,
        session: AsyncSession,
        *,
        status: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[InventoryLevel]:
        rows = await inventory_repo.list_inventory(session, status=status, limit=limit, offset=offset)
        return [to_level(r) for r in rows]

    async def stats(self, session: AsyncSession) -> Dict[str, Any]:
        return await inventory_repo.inventory_stats(session)

    async def movements(
        self, session: AsyncSession, variant_id: str, *, limit: int = 50
    ) -> List[StockMovement]:
        return await inventory_repo.list_movements(session, variant_id=variant_id, limit=limit)

    async def all_movements(self, session: AsyncSession, *, limit: int = 100) -> List[StockMovement]:
        return await inventory_repo.list_movements(session, limit=limit)
