# app/db/engine.py
# Async engine factory: pool_pre_ping on PostgreSQL, writer-serialising BEGIN on SQLite
from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

__all__ = ["create_async_engine_safe", "is_sqlite"]


def is_sqlite(url_str: str) -> bool:
    return make_url(url_str).get_backend_name().startswith("sqlite")


def _connect_args_for(url_str: str) -> dict[str, Any]:
    """
    Backend specific connect_args:
    - PostgreSQL(psycopg): application_name
    - SQLite: cross-thread use + busy timeout for writers waiting on BEGIN IMMEDIATE
    """
    u = make_url(url_str)
    backend = u.get_backend_name()

    if backend.startswith("postgresql"):
        return {"application_name": "backoffice-core"}

    if backend.startswith("sqlite"):
        return {"check_same_thread": False, "timeout": 30}

    return {}


def _install_sqlite_locking(engine: AsyncEngine) -> None:
    """
    SQLite has no SELECT ... FOR UPDATE. Taking the write lock when the
    transaction starts (BEGIN IMMEDIATE) gives the same read-modify-write
    isolation the inventory counters rely on.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, _record):
        # let SQLAlchemy emit BEGIN itself
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_async_engine_safe(url_str: str, *, echo: bool = False, **extra: Any) -> AsyncEngine:
    """Async engine for 'postgresql+psycopg' or 'sqlite+aiosqlite'."""
    connect_args: dict[str, Any] = _connect_args_for(url_str)

    kwargs: dict[str, Any] = {"echo": echo}
    if not is_sqlite(url_str):
        kwargs["pool_pre_ping"] = True
    if connect_args:
        kwargs["connect_args"] = connect_args
    kwargs.update(extra)

    engine = create_async_engine(url_str, **kwargs)
    if is_sqlite(url_str):
        _install_sqlite_locking(engine)
    return engine
