# app/api/routers/payments.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.adapters.auth_client import CurrentUser
from app.api.deps import get_container, get_current_user, get_session, require_admin
from app.core.container import Container
from app.schemas.payment import PaymentStatusOut, ReconcileSummaryOut

router = APIRouter(prefix="/payment", tags=["payment"])


@router.get("/status/{order_id}", response_model=PaymentStatusOut)
async def payment_status(
    order_id: str,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    container: Container = Depends(get_container),
):
    view = await container.payments.status(session, order_id=order_id, user=user)
    return PaymentStatusOut.model_validate(view)


@router.post("/reconcile", response_model=ReconcileSummaryOut)
async def reconcile_now(
    _admin: CurrentUser = Depends(require_admin),
    container: Container = Depends(get_container),
):
    """One reconciliation sweep on demand (same code path as the scheduler)."""
    summary = await container.reconciler.run_once()
    return ReconcileSummaryOut(**summary.to_dict())
