# tests/core/test_scheduler.py
from __future__ import annotations

import asyncio

import pytest

from app.core.scheduler import JOB_ID, PaymentScheduler
from app.services.payment_reconcile import ReconcileSummary


class _Reconciler:
    def __init__(self, fail: bool = False):
        self.calls = 0
        self.fail = fail

    async def run_once(self) -> ReconcileSummary:
        self.calls += 1
        if self.fail:
            raise RuntimeError("db down")
        return ReconcileSummary(checked=1, settled=1)


@pytest.mark.asyncio
async def test_start_runs_first_tick_immediately_and_stop_is_clean():
    rec = _Reconciler()
    sched = PaymentScheduler(rec, interval_seconds=3600)

    sched.start()
    try:
        assert sched.running
        job = sched._scheduler.get_job(JOB_ID)
        assert job.max_instances == 1
        assert job.coalesce is True
        for _ in range(50):
            if rec.calls:
                break
            await asyncio.sleep(0.02)
        assert rec.calls == 1
        # second start is a no-op
        sched.start()
        assert len(sched._scheduler.get_jobs()) == 1
    finally:
        sched.stop()
    assert not sched.running


@pytest.mark.asyncio
async def test_tick_survives_a_crashing_sweep(caplog):
    sched = PaymentScheduler(_Reconciler(fail=True), interval_seconds=60)
    summary = await sched.tick()
    assert summary.checked == 0
    assert "payment reconcile tick crashed" in caplog.text


@pytest.mark.asyncio
async def test_tick_returns_the_sweep_summary():
    summary = await PaymentScheduler(_Reconciler(), interval_seconds=60).tick()
    assert summary.settled == 1
