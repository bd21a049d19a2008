# app/schemas/order.py
from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _Base(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="ignore")


class OrderLineIn(_Base):
    variant_id: Annotated[str, Field(min_length=1, max_length=64)]
    quantity: Annotated[int, Field(ge=1, le=10_000)]

    @field_validator("variant_id")
    @classmethod
    def _trim(cls, v: str) -> str:
        s = v.strip()
        if not s:
            raise ValueError("variant_id must not be blank")
        return s


class ShippingAddressIn(_Base):
    recipient_name: Optional[str] = None
    phone: Optional[str] = None
    line1: Optional[str] = None
    line2: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None


class OrderCreateIn(_Base):
    """Order request; at least one line."""

    items: Annotated[List[OrderLineIn], Field(min_length=1)]
    shipping_address: Optional[ShippingAddressIn] = None
    shipment_method_id: Optional[int] = Field(default=None, ge=1)
    coupon_code: Optional[Annotated[str, Field(max_length=64)]] = None


class OrderItemOut(_Base):
    id: int
    variant_id: Optional[str] = None
    sku: str
    title: str
    unit_price_cents: int
    quantity: int
    total_price_cents: int


class PaymentOut(_Base):
    provider: str
    payment_token: Optional[str] = None
    gateway_transaction_id: Optional[str] = None
    status: str
    amount_cents: int
    currency: str
    paid_at: Optional[datetime] = None


class ShipmentOut(_Base):
    shipment_method_id: Optional[int] = None
    status: str
    tracking_number: Optional[str] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None


class OrderOut(_Base):
    id: str
    user_id: str
    status: str
    subtotal_cents: int
    discount_cents: int
    tax_cents: int
    shipping_cents: int
    total_cents: int
    currency: str
    coupon_code: Optional[str] = None
    shipping_address: Optional[Dict[str, Any]] = None
    created_at: datetime
    items: List[OrderItemOut] = Field(default_factory=list)
    payment: Optional[PaymentOut] = None
    shipment: Optional[ShipmentOut] = None


class PaymentTokenOut(_Base):
    token: str
    redirect_url: Optional[str] = None


class OrderCreateOut(_Base):
    idempotent: bool = False
    order: OrderOut
    payment: Optional[PaymentTokenOut] = None


class OrderStatusIn(_Base):
    status: str
    tracking_number: Optional[Annotated[str, Field(max_length=128)]] = None
