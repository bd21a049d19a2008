# app/api/deps.py
from __future__ import annotations

from typing import AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.adapters.auth_client import CurrentUser
from app.api.errors import UnauthenticatedError, UnauthorizedError
from app.core.container import Container


def get_container(request: Request) -> Container:
    """Collaborators built at startup (see app.main.create_app)."""
    return request.app.state.container


async def get_session(
    container: Container = Depends(get_container),
) -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped AsyncSession; services own their transaction boundaries."""
    async with container.session_maker() as session:
        yield session


async def get_current_user(
    request: Request,
    container: Container = Depends(get_container),
) -> CurrentUser:
    """
    Cookie-forwarding session lookup against the auth service.

    - no cookie / no session -> 401
    """
    user = await container.auth.get_session(request.headers.get("cookie"))
    if user is None:
        raise UnauthenticatedError("not authenticated")
    return user


async def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_admin:
        raise UnauthorizedError("admin role required")
    return user


__all__ = (
    "get_container",
    "get_session",
    "get_current_user",
    "require_admin",
)
