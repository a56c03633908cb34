"""
Сервис подписок
"""

import logging
from datetime import datetime

from app.clients.base import Notifier
from app.core.config import Config, Messages
from app.core.constants import SubscriptionState
from app.core.exceptions import ShopError
from app.database.orm_models import Subscription
from app.domain.state_machines import EqualStateError
from app.repositories import StaleTransitionError, SubscriptionRepository
from app.services.user_service import UserService
from app.utils.helpers import utc_now


logger = logging.getLogger(__name__)


class SubscriptionService:
    """Сервис для управления подписками"""

    def __init__(
        self,
        subscription_repo: SubscriptionRepository,
        user_service: UserService,
        notifier: Notifier,
        batch_size: int | None = None,
    ):
        self.subscription_repo = subscription_repo
        self.user_service = user_service
        self.notifier = notifier
        self.batch_size = batch_size or Config.SUBSCRIPTION_BATCH_SIZE

    async def create_subscription(
        self,
        user_id: int,
        order_id: int,
        deadline: datetime,
        description: str = Messages.SUBSCRIPTION_DESCRIPTION,
        created_at: datetime | None = None,
    ) -> Subscription:
        """
        Выдача подписки по заказу

        Подписка всегда создается активной. Повторный вызов для того же
        заказа возвращает уже выданную подписку.

        Args:
            user_id: ID пользователя
            order_id: ID заказа
            deadline: Дата окончания
            description: Описание
            created_at: Время выдачи (по умолчанию utc_now())

        Returns:
            Объект Subscription
        """
        existing = await self.subscription_repo.get_by_order_id(order_id)
        if existing is not None:
            logger.debug(f"Подписка по заказу #{order_id} уже выдана (#{existing.id})")
            return existing

        return await self.subscription_repo.create(
            user_id=user_id,
            order_id=order_id,
            deadline=deadline,
            description=description,
            created_at=created_at or utc_now(),
        )

    async def get_user_subscriptions(self, user_id: int) -> list[Subscription]:
        """Подписки пользователя"""
        return await self.subscription_repo.list_by_user(user_id)

    async def deactivate_expired_subscriptions(self, now: datetime | None = None) -> int:
        """
        Фоновая задача: деактивация истекших подписок

        Сначала фиксируется статус, затем отправляется уведомление. Если
        уведомление не доставлено, подписка останется с отставшим
        notified_state и будет повторно обработана следующим запуском.

        Args:
            now: Текущее время (по умолчанию utc_now())

        Returns:
            Количество деактивированных подписок
        """
        now = now or utc_now()
        deactivated = 0

        for subscription in await self.subscription_repo.find_expired(now, self.batch_size):
            try:
                await self.subscription_repo.move_to(subscription.id, SubscriptionState.INACTIVE)
            except (EqualStateError, StaleTransitionError):
                logger.debug(f"Подписка #{subscription.id} уже деактивирована")
                continue
            deactivated += 1
            logger.info(f"Подписка #{subscription.id} истекла (user #{subscription.user_id})")

        for subscription in await self.subscription_repo.find_pending_notifications(
            self.batch_size
        ):
            await self._notify_expired(subscription)

        return deactivated

    async def _notify_expired(self, subscription: Subscription) -> None:
        try:
            user = await self.user_service.get_user(subscription.user_id)
            await self.notifier.send(
                user.chat_id, Messages.SUBSCRIPTION_EXPIRED_TITLE, subscription.description
            )
        except ShopError as e:
            logger.warning(f"Не удалось уведомить об истечении подписки #{subscription.id}: {e}")
            return

        await self.subscription_repo.mark_notified(subscription.id, SubscriptionState.INACTIVE)
