# app/services/notification_service.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.notification import Notification
from app.services import catalog_repo

log = logging.getLogger("backoffice.notify")


class Notifier(Protocol):
    async def notify(self, user_id: str, type: str, payload: Dict[str, Any]) -> None: ...

    async def notify_all_admins(self, type: str, payload: Dict[str, Any]) -> None: ...


class NotificationService:
    """
    Notification sink backed by the notifications table.

    Callers invoke it after their own transaction committed. Each call
    writes in its own short transaction; failures are logged and dropped so
    they never undo or block the business operation that triggered them.
    Delivery (push/e-mail) is someone else's job.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def notify(self, user_id: str, type: str, payload: Optional[Dict[str, Any]] = None) -> None:
        try:
            async with self._session_maker() as session, session.begin():
                session.add(Notification(user_id=user_id, type=str(type), payload=payload or {}))
        except Exception:
            log.exception("notify failed: user=%s type=%s", user_id, type)

    async def notify_all_admins(self, type: str, payload: Optional[Dict[str, Any]] = None) -> None:
        try:
            async with self._session_maker() as session, session.begin():
                admin_ids = await catalog_repo.list_admin_ids(session)
                for admin_id in admin_ids:
                    session.add(Notification(user_id=admin_id, type=str(type), payload=payload or {}))
        except Exception:
            log.exception("notify_all_admins failed: type=%s", type)
