"""
Планировщик фоновых задач сверки
"""

import logging
from collections.abc import Awaitable, Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.core.config import Config
from app.services.inventory_service import InventoryService
from app.services.order_service import OrderService
from app.services.payment_service import PaymentService
from app.services.subscription_service import SubscriptionService


logger = logging.getLogger(__name__)

JobFunc = Callable[[], Awaitable[int]]


class ReconciliationScheduler:
    """
    Планировщик задач магазина

    Каждая задача работает с ограниченной пачкой записей и не пересекается
    сама с собой (max_instances=1). Задачи разных видов выполняются
    параллельно: корректность обеспечивают условные переходы статусов.
    """

    def __init__(
        self,
        inventory: InventoryService,
        order_service: OrderService,
        payment_service: PaymentService,
        subscription_service: SubscriptionService,
    ):
        self.scheduler = AsyncIOScheduler()
        self._jobs: dict[str, tuple[str, JobFunc, int]] = {
            "expire_pre_reservations": (
                "Возврат просроченных резервов",
                inventory.expire_pre_reservations,
                Config.PRERESERVE_EXPIRY_INTERVAL,
            ),
            "process_confirmed_orders": (
                "Выдача оплаченных заказов",
                order_service.process_confirmed_orders,
                Config.ORDER_JOB_INTERVAL,
            ),
            "cancel_expired_orders": (
                "Отмена заказов по TTL",
                order_service.cancel_expired_orders,
                Config.ORDER_JOB_INTERVAL,
            ),
            "reconcile_processing_invoices": (
                "Проведение оплаченных счетов",
                payment_service.reconcile_processing_invoices,
                Config.INVOICE_JOB_INTERVAL,
            ),
            "reconcile_stuck_invoices": (
                "Сверка зависших счетов с журналом провайдера",
                payment_service.reconcile_stuck_invoices,
                Config.HANDLING_JOB_INTERVAL,
            ),
            "deactivate_expired_subscriptions": (
                "Деактивация истекших подписок",
                subscription_service.deactivate_expired_subscriptions,
                Config.SUBSCRIPTION_JOB_INTERVAL,
            ),
            "redeliver_order_notifications": (
                "Повтор недоставленных уведомлений",
                order_service.redeliver_notifications,
                Config.REDELIVERY_INTERVAL,
            ),
        }

    @property
    def job_ids(self) -> list[str]:
        return list(self._jobs)

    async def start(self):
        """Запуск планировщика"""
        for job_id, (name, func, interval) in self._jobs.items():
            self.scheduler.add_job(
                self._guarded,
                trigger=IntervalTrigger(seconds=interval),
                args=[job_id],
                id=job_id,
                name=name,
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )

        self.scheduler.start()
        logger.info(f"Планировщик задач запущен ({len(self._jobs)} задач)")

    async def stop(self):
        """Остановка планировщика"""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=True)
        logger.info("Планировщик задач остановлен")

    async def run_job(self, job_id: str) -> int:
        """
        Однократный запуск задачи вне расписания

        Args:
            job_id: ID задачи

        Returns:
            Количество обработанных записей

        Raises:
            KeyError: Если задачи нет
        """
        _, func, _ = self._jobs[job_id]
        return await func()

    async def _guarded(self, job_id: str) -> None:
        """Запуск задачи по расписанию: ошибка прерывает только текущий запуск"""
        try:
            processed = await self.run_job(job_id)
        except Exception as e:
            logger.exception(f"Ошибка в задаче {job_id}: {e}")
            return

        if processed:
            logger.debug(f"Задача {job_id}: обработано {processed}")
