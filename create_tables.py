# create_tables.py
# Dev shortcut: create every table straight from the ORM metadata (no alembic history).
from __future__ import annotations

import asyncio

from app.core.config import get_settings
from app.db.base import Base, init_models
from app.db.session import build_engine


async def main() -> None:
    settings = get_settings()
    init_models()
    engine = build_engine(settings.DATABASE_URL, echo=settings.SQL_ECHO)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    finally:
        await engine.dispose()
    print(f"created {len(Base.metadata.tables)} tables")


if __name__ == "__main__":
    asyncio.run(main())
