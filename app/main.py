# app/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routers.inventory import router as inventory_router
from app.api.routers.orders import router as orders_router
from app.api.routers.payments import router as payments_router
from app.api.routers.returns import router as returns_router
from app.core.config import AppSettings, get_settings
from app.core.container import Container, build_container
from app.core.logging import setup_logging
from app.http_problem_handlers import register_exception_handlers
from app.obs.metrics import PrometheusMiddleware
from app.obs.metrics import router as metrics_router

logger = logging.getLogger("backoffice")

VERSION = "1.0.0"


def create_app(container: Optional[Container] = None, settings: Optional[AppSettings] = None) -> FastAPI:
    """
    App factory.

    - container given (tests): used as-is, never closed here
    - otherwise: built from settings on startup and closed on shutdown
    """
    settings = settings or (container.settings if container is not None else get_settings())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.LOG_LEVEL, json=settings.JSON_LOG)
        owned = getattr(app.state, "container", None) is None
        if owned:
            app.state.container = build_container(settings)
        c: Container = app.state.container

        if settings.PAYMENT_RECONCILE_ENABLED:
            c.scheduler.start()
        logger.info("startup: env=%s db=%s", settings.ENV, settings.DATABASE_URL.split("@")[-1])
        try:
            yield
        finally:
            c.scheduler.stop()
            if owned:
                await c.aclose()
                app.state.container = None
            logger.info("shutdown complete")

    app = FastAPI(
        title="Back-office Core",
        version=VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.container = container

    origins = list(settings.CORS_ORIGINS or [])
    if settings.CLIENT_ORIGIN and settings.CLIENT_ORIGIN not in origins:
        origins.append(settings.CLIENT_ORIGIN)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(PrometheusMiddleware)
    register_exception_handlers(app)

    app.include_router(orders_router)
    app.include_router(payments_router)
    app.include_router(returns_router)
    app.include_router(inventory_router)
    app.include_router(metrics_router)

    @app.get("/")
    async def root():
        return {"name": "backoffice-core", "version": VERSION}

    @app.get("/ping")
    async def ping():
        return {"status": "ok"}

    @app.get("/healthz")
    async def healthz():
        return {"status": "ok"}

    return app


app = create_app()
