"""
Репозиторий единиц товара (склад и резервирование)
"""

import logging
from datetime import datetime

from sqlalchemy import delete, func, select, update

from app.core.constants import ItemStatus
from app.database.orm_models import Item, Order
from app.domain.state_machines import ItemStateMachine
from app.repositories.base import BaseRepository
from app.repositories.exceptions import ItemNotDeletableError, NoStockError
from app.repositories.order_repository import LIVE_STATUSES
from app.utils.helpers import utc_now


logger = logging.getLogger(__name__)


class ItemRepository(BaseRepository[Item]):
    """Репозиторий для работы с единицами товара"""

    model = Item
    state_machine = ItemStateMachine

    # Сколько кандидатов пробуем, если конкурент успел забрать выбранную строку
    PRE_RESERVE_ATTEMPTS = 5

    async def add_item(self, product_id: int, payload: str) -> Item:
        """
        Добавление единицы товара в продажу

        Args:
            product_id: ID товара каталога
            payload: Выдаваемое содержимое

        Returns:
            Созданный Item в статусе sale
        """
        now = utc_now()
        async with self.transaction() as session:
            item = Item(
                product_id=product_id,
                status=ItemStatus.SALE,
                payload=payload,
                created_at=now,
                updated_at=now,
            )
            session.add(item)
            await session.flush()

        logger.info(f"Добавлена единица товара #{item.id} для продукта #{product_id}")
        return item

    async def pre_reserve(self, product_id: int) -> int:
        """
        Предварительный резерв свободной единицы товара

        Выбираем кандидата под блокировкой (SKIP LOCKED на PostgreSQL, чтобы
        конкурирующие покупатели брали разные строки) и переводим его
        условным UPDATE. Если строку успели перевести, берем следующего.

        Args:
            product_id: ID товара каталога

        Returns:
            ID зарезервированной единицы

        Raises:
            NoStockError: Если свободных единиц нет
        """
        for attempt in range(1, self.PRE_RESERVE_ATTEMPTS + 1):
            async with self.transaction() as session:
                candidate = (
                    select(Item.id)
                    .where(Item.product_id == product_id, Item.status == ItemStatus.SALE)
                    .order_by(Item.id)
                    .limit(1)
                    .with_for_update(skip_locked=True)
                )
                item_id = (await session.execute(candidate)).scalar_one_or_none()
                if item_id is None:
                    raise NoStockError(product_id)

                transition = ItemStateMachine.request_transition(
                    ItemStatus.SALE, ItemStatus.PRE_RESERVED
                )
                result = await session.execute(
                    update(Item)
                    .where(Item.id == item_id, Item.status == transition.from_status)
                    .values(
                        status=transition.to_status,
                        updated_at=utc_now(),
                        version=Item.version + 1,
                    )
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 1:
                    logger.debug(f"Item #{item_id} pre-reserved (attempt {attempt})")
                    return item_id

            logger.debug(f"Item #{item_id} taken by another buyer, retrying")

        raise NoStockError(product_id)

    async def scan_expired_pre_reserved(self, limit: int, older_than: datetime) -> list[Item]:
        """
        Поиск просроченных предварительных резервов

        Args:
            limit: Максимум записей
            older_than: Граница updated_at (now - TTL)

        Returns:
            Список Item в статусе preReserved
        """
        async with self.transaction() as session:
            stmt = (
                select(Item)
                .where(Item.status == ItemStatus.PRE_RESERVED, Item.updated_at < older_than)
                .order_by(Item.updated_at)
                .limit(limit)
            )
            return list((await session.execute(stmt)).scalars().all())

    async def count_available(self, product_id: int) -> int:
        """Количество единиц товара в продаже"""
        async with self.transaction() as session:
            stmt = select(func.count(Item.id)).where(
                Item.product_id == product_id, Item.status == ItemStatus.SALE
            )
            return (await session.execute(stmt)).scalar_one()

    async def count_available_by_product(self, product_ids: list[int]) -> dict[int, int]:
        """Количество единиц в продаже для нескольких товаров одним запросом"""
        if not product_ids:
            return {}

        async with self.transaction() as session:
            stmt = (
                select(Item.product_id, func.count(Item.id))
                .where(Item.product_id.in_(product_ids), Item.status == ItemStatus.SALE)
                .group_by(Item.product_id)
            )
            rows = (await session.execute(stmt)).all()
        return {product_id: count for product_id, count in rows}

    async def release_unclaimed(self, item_id: int, order_id: int) -> bool:
        """
        Возврат единицы отмененного заказа, если на нее никто не претендует

        Одним условным UPDATE: единица должна быть в reserved и не
        принадлежать другому незавершенному заказу. Единица в preReserved
        может быть уже взята другим покупателем, который еще не создал заказ.

        Args:
            item_id: ID единицы товара
            order_id: ID отмененного заказа

        Returns:
            True если единица возвращена в продажу
        """
        transition = ItemStateMachine.request_transition(ItemStatus.RESERVED, ItemStatus.SALE)
        claimed = (
            select(Order.id)
            .where(
                Order.item_id == item_id,
                Order.id != order_id,
                Order.status.in_(LIVE_STATUSES),
            )
            .exists()
        )
        async with self.transaction() as session:
            result = await session.execute(
                update(Item)
                .where(Item.id == item_id, Item.status == transition.from_status, ~claimed)
                .values(
                    status=transition.to_status,
                    updated_at=utc_now(),
                    version=Item.version + 1,
                )
                .execution_options(synchronize_session=False)
            )
        return result.rowcount == 1

    async def delete_item(self, item_id: int) -> None:
        """
        Удаление единицы товара со склада

        Удаляется только единица в продаже, которая ни разу не попадала в заказ.

        Raises:
            EntityNotFoundError: Если единицы нет
            ItemNotDeletableError: Если единица зарезервирована, выдана или была в заказе
        """
        async with self.transaction() as session:
            status = await self._lock_status(session, item_id)
            ordered = select(Order.id).where(Order.item_id == item_id).exists()
            result = await session.execute(
                delete(Item)
                .where(Item.id == item_id, Item.status == ItemStatus.SALE, ~ordered)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise ItemNotDeletableError(item_id, status)

        logger.info(f"Единица товара #{item_id} удалена")

    async def list_by_product(self, product_id: int) -> list[Item]:
        """Все единицы товара"""
        async with self.transaction() as session:
            stmt = select(Item).where(Item.product_id == product_id).order_by(Item.id)
            return list((await session.execute(stmt)).scalars().all())
