# app/db/base.py
from __future__ import annotations

import importlib
import logging

from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase, configure_mappers

log = logging.getLogger("backoffice.models")

NAMING_CONVENTION = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Single ORM base for every table."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)


_INITIALIZED: bool = False


def init_models(*, force: bool = False) -> None:
    """
    Import every model module and configure mappers once, so string
    relationship targets resolve before the first query.
    """
    global _INITIALIZED
    if _INITIALIZED and not force:
        return

    importlib.import_module("app.models")
    configure_mappers()
    _INITIALIZED = True
    log.info("ORM models initialized (%d tables)", len(Base.metadata.tables))
