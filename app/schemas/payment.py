# app/schemas/payment.py
from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class PaymentStatusOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    order_id: str
    transaction_status: Optional[str] = None
    payment_status: str
    outcome: Optional[str] = None
    gateway: Dict[str, Any] = Field(default_factory=dict)


class ReconcileSummaryOut(BaseModel):
    checked: int
    settled: int
    cancelled: int
    skipped: int
    failed: int
    noop: int
