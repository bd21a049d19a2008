# app/api/routers/returns.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.adapters.auth_client import CurrentUser
from app.api.deps import get_container, get_current_user, get_session, require_admin
from app.core.container import Container
from app.schemas.return_request import ReturnCreateIn, ReturnOut, ReturnStatusIn
from app.services.return_service import ReturnLineRequest

router = APIRouter(prefix="/returns", tags=["returns"])


@router.post("", response_model=ReturnOut, status_code=status.HTTP_201_CREATED)
async def create_return(
    payload: ReturnCreateIn,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    container: Container = Depends(get_container),
):
    ret = await container.returns.create_return(
        session,
        order_id=payload.order_id,
        reason=payload.reason,
        items=[ReturnLineRequest(order_item_id=i.order_item_id, quantity=i.quantity) for i in payload.items],
        user_id=user.id,
        images=payload.images,
    )
    return ReturnOut.model_validate(ret)


@router.get("", response_model=List[ReturnOut])
async def list_returns(
    status_: Optional[str] = Query(default=None, alias="status"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    container: Container = Depends(get_container),
):
    rows = await container.returns.list_returns(
        session, user=user, status=status_, limit=limit, offset=offset
    )
    return [ReturnOut.model_validate(r) for r in rows]


@router.get("/{return_id}", response_model=ReturnOut)
async def get_return(
    return_id: str,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    container: Container = Depends(get_container),
):
    ret = await container.returns.get_return(session, return_id=return_id, user=user)
    return ReturnOut.model_validate(ret)


@router.put("/{return_id}/status", response_model=ReturnOut)
async def update_return_status(
    return_id: str,
    payload: ReturnStatusIn,
    admin: CurrentUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
    container: Container = Depends(get_container),
):
    ret = await container.returns.update_status(
        session, return_id=return_id, new_status=payload.status, actor_id=admin.id
    )
    return ReturnOut.model_validate(ret)
