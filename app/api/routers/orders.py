# app/api/routers/orders.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Header, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.adapters.auth_client import CurrentUser
from app.api.deps import get_container, get_current_user, get_session, require_admin
from app.core.container import Container
from app.schemas.order import (
    OrderCreateIn,
    OrderCreateOut,
    OrderOut,
    OrderStatusIn,
    PaymentTokenOut,
)
from app.services.order_service import LineRequest

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=OrderCreateOut, status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: OrderCreateIn,
    x_idempotency_key: Optional[str] = Header(default=None, max_length=255),
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    container: Container = Depends(get_container),
):
    r = await container.orders.create(
        session,
        user_id=user.id,
        items=[LineRequest(variant_id=it.variant_id, quantity=it.quantity) for it in payload.items],
        shipping_address=(
            payload.shipping_address.model_dump(exclude_none=True) if payload.shipping_address else None
        ),
        shipment_method_id=payload.shipment_method_id,
        coupon_code=payload.coupon_code,
        idempotency_key=x_idempotency_key,
    )
    return OrderCreateOut(
        idempotent=r.idempotent,
        order=OrderOut.model_validate(r.order),
        payment=(
            PaymentTokenOut(token=r.payment.token, redirect_url=r.payment.redirect_url)
            if r.payment is not None
            else None
        ),
    )


@router.get("", response_model=List[OrderOut])
async def list_orders(
    status_: Optional[str] = Query(default=None, alias="status"),
    user_id: Optional[str] = Query(default=None, description="admin only"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    container: Container = Depends(get_container),
):
    rows = await container.orders.list_orders(
        session, user=user, status=status_, user_id=user_id, limit=limit, offset=offset
    )
    return [OrderOut.model_validate(o) for o in rows]


@router.get("/{order_id}", response_model=OrderOut)
async def get_order(
    order_id: str,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    container: Container = Depends(get_container),
):
    order = await container.orders.get_order(session, order_id=order_id, user=user)
    return OrderOut.model_validate(order)


@router.put("/{order_id}/status", response_model=OrderOut)
async def update_order_status(
    order_id: str,
    payload: OrderStatusIn,
    admin: CurrentUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
    container: Container = Depends(get_container),
):
    order = await container.order_status.update_status(
        session,
        order_id=order_id,
        new_status=payload.status,
        actor_id=admin.id,
        tracking_number=payload.tracking_number,
    )
    return OrderOut.model_validate(order)


@router.post("/{order_id}/payment-token", response_model=PaymentTokenOut)
async def retry_payment_token(
    order_id: str,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    container: Container = Depends(get_container),
):
    token = await container.orders.issue_payment_token(session, order_id=order_id, user=user)
    return PaymentTokenOut(token=token.token, redirect_url=token.redirect_url)
