# tests/api/conftest.py
from __future__ import annotations

import pytest_asyncio

from app.adapters.auth_client import CurrentUser
from tests.factories import make_user, make_variant


@pytest_asyncio.fixture
async def shop(session_maker, auth):
    """u-1 (customer), u-2 (customer), admin-1; two stocked variants."""
    async with session_maker() as s, s.begin():
        await make_user(s, "u-1")
        await make_user(s, "u-2")
        await make_user(s, "admin-1", role="admin")
        await make_variant(s, "v-1", price_cents=10000, stock=10, safety_stock=3)
        await make_variant(s, "v-2", price_cents=5000, stock=1, safety_stock=1)
    auth.register(CurrentUser(id="u-1"))
    auth.register(CurrentUser(id="u-2"))
    auth.register(CurrentUser(id="admin-1", role="admin"))
