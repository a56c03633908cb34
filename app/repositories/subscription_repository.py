"""
Репозиторий подписок
"""

import logging
from datetime import datetime

from sqlalchemy import or_, select, update

from app.core.constants import SubscriptionState
from app.database.orm_models import Subscription
from app.domain.state_machines import SubscriptionStateMachine
from app.repositories.base import BaseRepository


logger = logging.getLogger(__name__)


class SubscriptionRepository(BaseRepository[Subscription]):
    """Репозиторий для работы с подписками"""

    model = Subscription
    status_field = "state"
    state_machine = SubscriptionStateMachine

    async def create(
        self,
        user_id: int,
        order_id: int,
        deadline: datetime,
        description: str,
        created_at: datetime,
    ) -> Subscription:
        """
        Создание активной подписки

        Returns:
            Объект Subscription
        """
        async with self.transaction() as session:
            subscription = Subscription(
                user_id=user_id,
                order_id=order_id,
                state=SubscriptionState.ACTIVE,
                deadline=deadline,
                description=description,
                created_at=created_at,
                updated_at=created_at,
            )
            session.add(subscription)
            await session.flush()

        logger.info(f"Создана подписка #{subscription.id} по заказу #{order_id}")
        return subscription

    async def get_by_order_id(self, order_id: int) -> Subscription | None:
        """Подписка, выданная по заказу"""
        async with self.transaction() as session:
            stmt = select(Subscription).where(Subscription.order_id == order_id)
            return (await session.execute(stmt)).scalar_one_or_none()

    async def list_by_user(self, user_id: int) -> list[Subscription]:
        """Подписки пользователя, новые первыми"""
        async with self.transaction() as session:
            stmt = (
                select(Subscription)
                .where(Subscription.user_id == user_id)
                .order_by(Subscription.created_at.desc())
            )
            return list((await session.execute(stmt)).scalars().all())

    async def find_expired(self, now: datetime, limit: int) -> list[Subscription]:
        """Активные подписки с истекшим сроком"""
        async with self.transaction() as session:
            stmt = (
                select(Subscription)
                .where(Subscription.state == SubscriptionState.ACTIVE, Subscription.deadline < now)
                .order_by(Subscription.deadline)
                .limit(limit)
            )
            return list((await session.execute(stmt)).scalars().all())

    async def find_pending_notifications(self, limit: int) -> list[Subscription]:
        """Истекшие подписки, о которых пользователь еще не уведомлен"""
        async with self.transaction() as session:
            stmt = (
                select(Subscription)
                .where(
                    Subscription.state == SubscriptionState.INACTIVE,
                    or_(
                        Subscription.notified_state.is_(None),
                        Subscription.notified_state != SubscriptionState.INACTIVE,
                    ),
                )
                .order_by(Subscription.updated_at)
                .limit(limit)
            )
            return list((await session.execute(stmt)).scalars().all())

    async def mark_notified(self, subscription_id: int, state: str) -> bool:
        """Отметка о доставленном уведомлении (только если состояние не изменилось)"""
        async with self.transaction() as session:
            result = await session.execute(
                update(Subscription)
                .where(Subscription.id == subscription_id, Subscription.state == state)
                .values(notified_state=state)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount == 1
