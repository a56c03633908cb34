"""
Сервис склада: каталог, резервирование и выдача единиц товара
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal

from app.core.config import Config
from app.core.constants import ItemStatus, ProductType
from app.database.orm_models import Item, Product
from app.domain.state_machines import EqualStateError, ItemStateMachine
from app.repositories import ItemRepository, ProductRepository, StaleTransitionError
from app.utils.helpers import utc_now


logger = logging.getLogger(__name__)


class InventoryService:
    """
    Сервис для управления складом

    Единственный владелец записей Item: остальные сервисы меняют статус
    единиц товара только через его методы.
    """

    def __init__(
        self,
        item_repo: ItemRepository,
        product_repo: ProductRepository,
        prereserve_ttl: int | None = None,
        batch_size: int | None = None,
    ):
        """
        Инициализация сервиса

        Args:
            item_repo: Репозиторий единиц товара
            product_repo: Репозиторий каталога
            prereserve_ttl: TTL предварительного резерва (секунды)
            batch_size: Размер пачки для фоновой задачи
        """
        self.item_repo = item_repo
        self.product_repo = product_repo
        self.prereserve_ttl = timedelta(seconds=prereserve_ttl or Config.PRERESERVE_TTL)
        self.batch_size = batch_size or Config.ITEM_BATCH_SIZE

    # ==================== CATALOG ====================

    async def get_product(self, product_id: int, include_deleted: bool = False) -> Product:
        """Товар каталога (EntityNotFoundError если нет)"""
        return await self.product_repo.get_product(product_id, include_deleted=include_deleted)

    async def list_products(self, limit: int = 10, offset: int = 0) -> list[tuple[Product, int]]:
        """
        Витрина: товары, которые есть в наличии

        Returns:
            Список пар (товар, количество в продаже)
        """
        products = await self.product_repo.list_products(limit=limit, offset=offset)
        counts = await self.item_repo.count_available_by_product([p.id for p in products])
        return [(product, counts[product.id]) for product in products if counts.get(product.id)]

    async def create_product(
        self,
        name: str,
        description: str,
        price: Decimal,
        currency: str,
        subscription_period: int,
        product_type: str = ProductType.SUBSCRIPTION,
    ) -> Product:
        """Добавление товара в каталог"""
        return await self.product_repo.create(
            name=name,
            description=description,
            price=price,
            currency=currency,
            subscription_period=subscription_period,
            product_type=product_type,
        )

    async def list_all_products(
        self, limit: int = 100, offset: int = 0
    ) -> list[tuple[Product, int]]:
        """Все товары для администратора, включая закончившиеся и снятые с витрины"""
        products = await self.product_repo.list_products(
            limit=limit, offset=offset, include_deleted=True
        )
        counts = await self.item_repo.count_available_by_product([p.id for p in products])
        return [(product, counts.get(product.id, 0)) for product in products]

    async def update_product(self, product_id: int, **fields) -> Product:
        """
        Изменение товара

        Уже созданные заказы хранят свою цену, изменение влияет только на новые.
        """
        return await self.product_repo.update(product_id, **fields)

    async def delete_product(self, product_id: int) -> None:
        """Снятие товара с витрины"""
        await self.product_repo.soft_delete(product_id)

    async def add_items(self, product_id: int, payloads: list[str]) -> list[Item]:
        """
        Пополнение склада

        Args:
            product_id: ID товара
            payloads: Содержимое единиц (по одной на строку)

        Returns:
            Созданные единицы в статусе sale
        """
        await self.product_repo.get_product(product_id)
        return [await self.item_repo.add_item(product_id, payload) for payload in payloads]

    async def list_items(self, product_id: int) -> list[Item]:
        """Все единицы товара с их статусами"""
        return await self.item_repo.list_by_product(product_id)

    async def delete_item(self, item_id: int) -> None:
        """
        Удаление единицы со склада

        Raises:
            ItemNotDeletableError: Если единица уже участвовала в продаже
        """
        await self.item_repo.delete_item(item_id)

    # ==================== RESERVATION ====================

    async def get_item(self, item_id: int) -> Item:
        """Единица товара (EntityNotFoundError если нет)"""
        return await self.item_repo.get_by_id(item_id)

    async def count_available(self, product_id: int) -> int:
        """Количество единиц в продаже"""
        return await self.item_repo.count_available(product_id)

    async def pre_reserve(self, product_id: int) -> int:
        """
        Предварительный резерв единицы товара

        Returns:
            ID единицы товара

        Raises:
            NoStockError: Если свободных единиц нет
        """
        item_id = await self.item_repo.pre_reserve(product_id)
        logger.info(f"Item #{item_id} предварительно зарезервирован (product #{product_id})")
        return item_id

    async def confirm_reserve(self, item_id: int) -> None:
        """
        Подтверждение резерва за заказом

        Raises:
            StaleTransitionError: Если предварительный резерв уже истек
        """
        transition = ItemStateMachine.request_transition(
            ItemStatus.PRE_RESERVED, ItemStatus.RESERVED
        )
        await self.item_repo.change_status(item_id, transition)
        logger.info(f"Item #{item_id} зарезервирован")

    async def release(self, item_id: int) -> bool:
        """
        Возврат единицы товара в продажу

        Returns:
            True если статус изменен, False если единица уже в продаже

        Raises:
            IllegalTransitionError: Если единица уже выдана
            StaleTransitionError: Если проиграна гонка за строку
        """
        try:
            await self.item_repo.move_to(item_id, ItemStatus.SALE)
        except EqualStateError:
            logger.debug(f"Item #{item_id} уже в продаже")
            return False

        logger.info(f"Item #{item_id} возвращен в продажу")
        return True

    async def release_unclaimed(self, item_id: int, order_id: int) -> bool:
        """
        Возврат единицы заказа, который не успел подтвердить резерв

        Returns:
            True если единица возвращена в продажу
        """
        released = await self.item_repo.release_unclaimed(item_id, order_id)
        if released:
            logger.info(f"Item #{item_id} возвращен в продажу")
        else:
            logger.info(f"Item #{item_id} не возвращен: не в резерве или занят другим заказом")
        return released

    async def mark_performed(self, item_id: int) -> None:
        """
        Отметка о выдаче единицы товара покупателю

        Raises:
            StaleTransitionError: Если единица не в статусе reserved
        """
        transition = ItemStateMachine.request_transition(ItemStatus.RESERVED, ItemStatus.PERFORMED)
        await self.item_repo.change_status(item_id, transition)
        logger.info(f"Item #{item_id} выдан")

    # ==================== BACKGROUND ====================

    async def expire_pre_reservations(self, now: datetime | None = None) -> int:
        """
        Фоновая задача: возврат просроченных предварительных резервов

        Args:
            now: Текущее время (по умолчанию utc_now())

        Returns:
            Количество возвращенных в продажу единиц
        """
        now = now or utc_now()
        items = await self.item_repo.scan_expired_pre_reserved(
            limit=self.batch_size, older_than=now - self.prereserve_ttl
        )

        released = 0
        transition = ItemStateMachine.request_transition(ItemStatus.PRE_RESERVED, ItemStatus.SALE)
        for item in items:
            try:
                await self.item_repo.change_status(item.id, transition)
                released += 1
            except StaleTransitionError:
                # Резерв успели подтвердить
                logger.debug(f"Item #{item.id} уже не в предварительном резерве")

        if released:
            logger.info(f"Возвращено в продажу {released} единиц с истекшим резервом")
        return released
