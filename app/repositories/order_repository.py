"""
Репозиторий для работы с заказами
"""

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy import or_, select, update

from app.core.constants import OrderStatus
from app.database.orm_models import Order
from app.domain.state_machines import OrderStateMachine
from app.repositories.base import BaseRepository
from app.schemas.order import OrderFilters
from app.utils.helpers import utc_now


logger = logging.getLogger(__name__)

# Статусы, в которых заказ удерживает единицу товара
LIVE_STATUSES = (
    OrderStatus.FORM,
    OrderStatus.EXPECT_PAYMENTS,
    OrderStatus.HANDLING,
    OrderStatus.PROCESSING,
)


class OrderRepository(BaseRepository[Order]):
    """Репозиторий для работы с заказами"""

    model = Order
    state_machine = OrderStateMachine

    async def create(
        self,
        user_id: int,
        item_id: int,
        total_price: Decimal,
        currency: str,
        ttl: datetime,
    ) -> Order:
        """
        Создание заказа в статусе form

        Args:
            user_id: ID покупателя
            item_id: ID зарезервированной единицы товара
            total_price: Сумма заказа
            currency: Валюта
            ttl: Срок жизни неоплаченного заказа

        Returns:
            Объект Order
        """
        now = utc_now()
        async with self.transaction() as session:
            order = Order(
                user_id=user_id,
                item_id=item_id,
                status=OrderStatus.FORM,
                total_price=total_price,
                currency=currency,
                ttl=ttl,
                created_at=now,
                updated_at=now,
            )
            session.add(order)
            await session.flush()

        logger.info(f"Создан заказ #{order.id} (user #{user_id}, item #{item_id})")
        return order

    async def list_orders(self, filters: OrderFilters) -> list[Order]:
        """
        Список заказов по фильтрам

        Args:
            filters: Фильтры (user_id, статусы, окно TTL, пагинация)

        Returns:
            Список заказов, новые первыми
        """
        stmt = select(Order)
        if filters.user_id is not None:
            stmt = stmt.where(Order.user_id == filters.user_id)
        if filters.statuses:
            stmt = stmt.where(Order.status.in_(filters.statuses))
        if filters.ttl_from is not None:
            stmt = stmt.where(Order.ttl >= filters.ttl_from)
        if filters.ttl_to is not None:
            stmt = stmt.where(Order.ttl <= filters.ttl_to)

        stmt = stmt.order_by(Order.created_at.desc(), Order.id.desc())
        stmt = stmt.limit(filters.limit).offset(filters.offset)

        async with self.transaction() as session:
            return list((await session.execute(stmt)).scalars().all())

    async def find_by_status(self, status: str, limit: int) -> list[Order]:
        """Заказы в статусе, давно не менявшиеся - первыми"""
        async with self.transaction() as session:
            stmt = (
                select(Order)
                .where(Order.status == status)
                .order_by(Order.updated_at, Order.id)
                .limit(limit)
            )
            return list((await session.execute(stmt)).scalars().all())

    async def find_expired(self, statuses: list[str], now: datetime, limit: int) -> list[Order]:
        """Неоплаченные заказы с истекшим TTL"""
        async with self.transaction() as session:
            stmt = (
                select(Order)
                .where(Order.status.in_(statuses), Order.ttl < now)
                .order_by(Order.ttl)
                .limit(limit)
            )
            return list((await session.execute(stmt)).scalars().all())

    async def find_pending_notifications(self, statuses: list[str], limit: int) -> list[Order]:
        """Заказы, о текущем статусе которых покупатель еще не уведомлен"""
        async with self.transaction() as session:
            stmt = (
                select(Order)
                .where(
                    Order.status.in_(statuses),
                    or_(Order.notified_status.is_(None), Order.notified_status != Order.status),
                )
                .order_by(Order.updated_at)
                .limit(limit)
            )
            return list((await session.execute(stmt)).scalars().all())

    async def mark_notified(self, order_id: int, status: str) -> bool:
        """
        Отметка о доставленном уведомлении

        Отметка ставится только если заказ все еще в этом статусе.

        Returns:
            True если отметка сохранена
        """
        async with self.transaction() as session:
            result = await session.execute(
                update(Order)
                .where(Order.id == order_id, Order.status == status)
                .values(notified_status=status)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount == 1
