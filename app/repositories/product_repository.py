"""
Репозиторий каталога товаров
"""

import logging
from decimal import Decimal
from typing import Any

from sqlalchemy import select

from app.core.constants import ProductType
from app.database.orm_models import Product
from app.repositories.base import BaseRepository
from app.repositories.exceptions import EntityNotFoundError
from app.utils.helpers import utc_now


logger = logging.getLogger(__name__)


class ProductRepository(BaseRepository[Product]):
    """Репозиторий для работы с каталогом"""

    model = Product

    async def create(
        self,
        name: str,
        description: str,
        price: Decimal,
        currency: str,
        subscription_period: int,
        product_type: str = ProductType.SUBSCRIPTION,
    ) -> Product:
        """
        Создание товара

        Args:
            name: Название
            description: Описание
            price: Цена
            currency: Валюта
            subscription_period: Длительность подписки (секунды)
            product_type: Тип товара

        Returns:
            Созданный Product
        """
        async with self.transaction() as session:
            product = Product(
                name=name,
                description=description,
                price=price,
                currency=currency,
                subscription_period=subscription_period,
                type=product_type,
            )
            session.add(product)
            await session.flush()

        logger.info(f"Создан товар #{product.id} ({name})")
        return product

    async def get_product(self, product_id: int, include_deleted: bool = False) -> Product:
        """
        Получение товара

        Args:
            product_id: ID товара
            include_deleted: Вернуть и снятый с витрины товар (для уже оплаченных заказов)

        Raises:
            EntityNotFoundError: Если товара нет или он удален (без include_deleted)
        """
        product = await self.find_by_id(product_id)
        if product is None or (product.deleted_at is not None and not include_deleted):
            raise EntityNotFoundError(self.entity_name, product_id)
        return product

    async def list_products(
        self, limit: int = 10, offset: int = 0, include_deleted: bool = False
    ) -> list[Product]:
        """Список товаров (по умолчанию только неудаленные)"""
        stmt = select(Product)
        if not include_deleted:
            stmt = stmt.where(Product.deleted_at.is_(None))
        stmt = stmt.order_by(Product.id).limit(limit).offset(offset)

        async with self.transaction() as session:
            return list((await session.execute(stmt)).scalars().all())

    async def soft_delete(self, product_id: int) -> None:
        """Мягкое удаление товара"""
        async with self.transaction() as session:
            product = await session.get(Product, product_id)
            if product is None:
                raise EntityNotFoundError(self.entity_name, product_id)
            product.deleted_at = utc_now()

        logger.info(f"Товар #{product_id} удален")

    async def update(self, product_id: int, **fields: Any) -> Product:
        """
        Изменение полей товара

        Args:
            product_id: ID товара
            **fields: Новые значения (name, description, price, currency, subscription_period)

        Raises:
            EntityNotFoundError: Если товара нет или он удален
        """
        async with self.transaction() as session:
            product = await session.get(Product, product_id)
            if product is None or product.deleted_at is not None:
                raise EntityNotFoundError(self.entity_name, product_id)
            for name, value in fields.items():
                setattr(product, name, value)

        logger.info(f"Товар #{product_id} изменен: {', '.join(fields)}")
        return product
