# app/schemas/inventory.py
from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Base(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="ignore")


class InventoryLevelOut(_Base):
    variant_id: str
    sku: Optional[str] = None
    title: Optional[str] = None
    stock_quantity: int
    reserved_quantity: int
    available_quantity: int
    safety_stock: int
    status: str


class InventoryStatsOut(_Base):
    total_sku: int
    low_stock_count: int
    out_of_stock_count: int
    total_value_cents: int


class StockAdjustIn(_Base):
    """type: add / remove (floored at 0) / set"""

    type: Literal["add", "remove", "set"]
    quantity: int = Field(ge=0)
    reason: Optional[str] = Field(default=None, max_length=255)


class ThresholdIn(_Base):
    safety_stock: int = Field(ge=0)


class StockMovementOut(_Base):
    # 64-bit ids are emitted as JSON integers
    id: int
    variant_id: str
    action: str
    quantity_change: int
    previous_quantity: int
    new_quantity: int
    previous_reserved: int
    new_reserved: int
    reason: Optional[str] = None
    ref: Optional[str] = None
    user_id: Optional[str] = None
    created_at: datetime
