"""
Тесты планировщика фоновых задач
"""
import logging
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from app.core.config import Config
from app.services.scheduler import ReconciliationScheduler


JOB_IDS = [
    "expire_pre_reservations",
    "process_confirmed_orders",
    "cancel_expired_orders",
    "reconcile_processing_invoices",
    "reconcile_stuck_invoices",
    "deactivate_expired_subscriptions",
    "redeliver_order_notifications",
]


@pytest.fixture
def fake_services():
    return SimpleNamespace(
        inventory=SimpleNamespace(expire_pre_reservations=AsyncMock(return_value=0)),
        order_service=SimpleNamespace(
            process_confirmed_orders=AsyncMock(return_value=2),
            cancel_expired_orders=AsyncMock(return_value=0),
            redeliver_notifications=AsyncMock(return_value=0),
        ),
        payment_service=SimpleNamespace(
            reconcile_processing_invoices=AsyncMock(return_value=0),
            reconcile_stuck_invoices=AsyncMock(return_value=0),
        ),
        subscription_service=SimpleNamespace(
            deactivate_expired_subscriptions=AsyncMock(return_value=0)
        ),
    )


@pytest.fixture
def scheduler(fake_services) -> ReconciliationScheduler:
    return ReconciliationScheduler(
        inventory=fake_services.inventory,
        order_service=fake_services.order_service,
        payment_service=fake_services.payment_service,
        subscription_service=fake_services.subscription_service,
    )


class TestReconciliationScheduler:
    def test_all_jobs_registered(self, scheduler):
        assert scheduler.job_ids == JOB_IDS

    async def test_run_job_calls_service(self, scheduler, fake_services):
        processed = await scheduler.run_job("process_confirmed_orders")

        assert processed == 2
        fake_services.order_service.process_confirmed_orders.assert_awaited_once()

    async def test_run_unknown_job(self, scheduler):
        with pytest.raises(KeyError):
            await scheduler.run_job("send_daily_report")

    async def test_failing_job_is_logged(self, scheduler, fake_services, caplog):
        """Ошибка задачи прерывает только текущий запуск"""
        fake_services.payment_service.reconcile_stuck_invoices.side_effect = RuntimeError(
            "ledger exploded"
        )

        with caplog.at_level(logging.ERROR, logger="app.services.scheduler"):
            await scheduler._guarded("reconcile_stuck_invoices")

        assert "reconcile_stuck_invoices" in caplog.text
        assert "ledger exploded" in caplog.text

    async def test_start_and_stop(self, scheduler):
        await scheduler.start()
        try:
            jobs = {job.id: job for job in scheduler.scheduler.get_jobs()}
            assert set(jobs) == set(JOB_IDS)
            for job in jobs.values():
                assert job.max_instances == 1
                assert job.coalesce is True
            assert (
                jobs["reconcile_stuck_invoices"].trigger.interval.total_seconds()
                == Config.HANDLING_JOB_INTERVAL
            )
        finally:
            await scheduler.stop()

        assert not scheduler.scheduler.running
