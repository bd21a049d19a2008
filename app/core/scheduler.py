# app/core/scheduler.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from app.services.payment_reconcile import PaymentReconciler, ReconcileSummary

log = logging.getLogger("backoffice.scheduler")

JOB_ID = "payment-reconcile"


class PaymentScheduler:
    """
    Recurring payment reconciliation on the running event loop.

    - first tick fires immediately on start(), then every `interval_seconds`
    - max_instances=1 + coalesce: a slow tick is never overlapped by the next one
    - stop() removes the timer without waiting; an in-flight tick finishes on its own
    """

    def __init__(self, reconciler: PaymentReconciler, *, interval_seconds: int = 300):
        self.reconciler = reconciler
        self.interval_seconds = int(interval_seconds)
        self._scheduler: Optional[AsyncIOScheduler] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    async def tick(self) -> ReconcileSummary:
        try:
            return await self.reconciler.run_once()
        except Exception:
            # the next tick retries; a crash here must not unschedule the job
            log.exception("payment reconcile tick crashed")
            return ReconcileSummary()

    def start(self) -> None:
        if self.running:
            return
        scheduler = AsyncIOScheduler(timezone=timezone.utc)
        scheduler.add_job(
            self.tick,
            "interval",
            seconds=self.interval_seconds,
            id=JOB_ID,
            next_run_time=datetime.now(timezone.utc),
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        scheduler.start()
        self._scheduler = scheduler
        log.info("payment reconcile scheduler started (every %ss)", self.interval_seconds)

    def stop(self) -> None:
        if self._scheduler is None:
            return
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self._scheduler = None
        log.info("payment reconcile scheduler stopped")
