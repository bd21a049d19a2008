# app/db/__init__.py
from app.db.base import Base, init_models
from app.db.session import build_engine, build_session_maker, normalize_async_dsn

__all__ = ["Base", "init_models", "build_engine", "build_session_maker", "normalize_async_dsn"]
