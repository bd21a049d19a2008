# app/core/tx.py
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession


@asynccontextmanager
async def tx_commit(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Commit block that works whether or not the session already autobegan:

    - already in a transaction (earlier reads): commit it on success, roll back on error
    - otherwise: plain session.begin()
    """
    if session.in_transaction():
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        await session.commit()
        return

    async with session.begin():
        yield session
