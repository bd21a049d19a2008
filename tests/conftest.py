# tests/conftest.py
from __future__ import annotations

from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from app.core.config import AppSettings
from app.core.container import Container, build_container
from app.db.base import Base, init_models
from app.db.session import build_engine, build_session_maker
from app.main import create_app
from tests.helpers.fakes import FakeAuth, FakeGateway, RecordingNotifier


# =========================================
# Settings: one SQLite file per test, scheduler off
# =========================================
@pytest.fixture
def settings(tmp_path) -> AppSettings:
    return AppSettings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'backoffice.db'}",
        PAYMENT_RECONCILE_ENABLED=False,
        TAX_RATE_BP=1000,
        SHIPPING_RATES={1: 9000, 2: 15000, 3: 7000},
        RETURN_WINDOW_DAYS=7,
        CLIENT_ORIGIN="http://shop.test",
        CORS_ORIGINS=["http://shop.test"],
    )


@pytest_asyncio.fixture
async def engine(settings: AppSettings) -> AsyncGenerator[AsyncEngine, None]:
    init_models()
    eng = build_engine(settings.DATABASE_URL)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield eng
    finally:
        await eng.dispose()


@pytest.fixture
def session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_maker(engine)


@pytest_asyncio.fixture
async def session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """
    Plain session for service calls. Tests commit (or let the service commit)
    before anything that writes through its own session: SQLite holds the
    write lock for the whole transaction.
    """
    async with session_maker() as sess:
        try:
            yield sess
        finally:
            if sess.in_transaction():
                await sess.rollback()


# =========================================
# Collaborators
# =========================================
@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def auth() -> FakeAuth:
    return FakeAuth()


@pytest.fixture
def container(settings, engine, gateway, auth, notifier) -> Container:
    return build_container(settings, engine=engine, gateway=gateway, auth=auth, notifier=notifier)


# =========================================
# FastAPI / httpx AsyncClient (no lifespan: container injected)
# =========================================
@pytest_asyncio.fixture
async def client(container: Container) -> AsyncGenerator[httpx.AsyncClient, None]:
    app = create_app(container=container)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(
        transport=transport,
        base_url="http://testserver",
        timeout=httpx.Timeout(10.0, connect=5.0),
    ) as c:
        yield c
