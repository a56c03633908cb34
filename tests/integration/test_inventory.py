"""
Интеграционные тесты склада: каталог и резервирование
"""
import asyncio
from decimal import Decimal

import pytest

from app.core.constants import Currency, ItemStatus
from app.domain.state_machines import IllegalTransitionError
from app.repositories import (
    EntityNotFoundError,
    ItemNotDeletableError,
    NoStockError,
    StaleTransitionError,
)


pytestmark = pytest.mark.integration


class TestCatalog:
    async def test_list_products_hides_sold_out(self, services, product):
        inventory = services.inventory_service
        empty = await inventory.create_product(
            name="Пустой", description="", price=Decimal("5"), currency=Currency.XTR,
            subscription_period=60,
        )

        listed = await inventory.list_products()

        assert [(p.id, count) for p, count in listed] == [(product.id, 3)]
        assert empty.id not in [p.id for p, _ in listed]

    async def test_deleted_product_not_found(self, services, product):
        inventory = services.inventory_service
        await inventory.delete_product(product.id)

        with pytest.raises(EntityNotFoundError):
            await inventory.get_product(product.id)
        assert await inventory.list_products() == []

    async def test_add_items_to_unknown_product(self, services):
        with pytest.raises(EntityNotFoundError):
            await services.inventory_service.add_items(999, ["key"])

    async def test_list_all_products_for_admin(self, services, product):
        """Администратор видит закончившиеся и снятые с витрины товары"""
        inventory = services.inventory_service
        empty = await inventory.create_product(
            name="Пустой", description="", price=Decimal("5"), currency=Currency.XTR,
            subscription_period=60,
        )
        await inventory.delete_product(product.id)

        listed = await inventory.list_all_products()

        assert [(p.id, count) for p, count in listed] == [(product.id, 3), (empty.id, 0)]
        hidden = await inventory.get_product(product.id, include_deleted=True)
        assert hidden.deleted_at is not None

    async def test_update_product(self, services, product):
        inventory = services.inventory_service

        updated = await inventory.update_product(product.id, price=Decimal("150"), name="VPN+")

        assert updated.price == Decimal("150")
        reloaded = await inventory.get_product(product.id)
        assert reloaded.name == "VPN+"
        assert reloaded.description == product.description

    async def test_update_deleted_product_not_found(self, services, product):
        inventory = services.inventory_service
        await inventory.delete_product(product.id)

        with pytest.raises(EntityNotFoundError):
            await inventory.update_product(product.id, price=Decimal("1"))


class TestItemAdministration:
    async def test_list_items(self, services, product):
        items = await services.inventory_service.list_items(product.id)

        assert [item.payload for item in items] == ["key-1", "key-2", "key-3"]
        assert {item.status for item in items} == {ItemStatus.SALE}

    async def test_delete_item_on_sale(self, services, product):
        inventory = services.inventory_service
        [first, *_] = await inventory.list_items(product.id)

        await inventory.delete_item(first.id)

        with pytest.raises(EntityNotFoundError):
            await inventory.get_item(first.id)
        assert await inventory.count_available(product.id) == 2

    async def test_reserved_item_not_deletable(self, services, product):
        inventory = services.inventory_service
        item_id = await inventory.pre_reserve(product.id)

        with pytest.raises(ItemNotDeletableError) as exc_info:
            await inventory.delete_item(item_id)

        assert exc_info.value.status == ItemStatus.PRE_RESERVED
        assert (await inventory.get_item(item_id)).status == ItemStatus.PRE_RESERVED

    async def test_previously_ordered_item_not_deletable(self, services, buyer, product):
        """Единица из отмененного заказа вернулась в продажу, но удалить ее нельзя"""
        inventory = services.inventory_service
        order_id = await services.order_service.create_order(buyer.id, product.id)
        order = await services.order_service.get_order(order_id, buyer.id)
        await services.order_service.canceled(order_id)
        assert (await inventory.get_item(order.product.item_id)).status == ItemStatus.SALE

        with pytest.raises(ItemNotDeletableError):
            await inventory.delete_item(order.product.item_id)

    async def test_delete_unknown_item(self, services):
        with pytest.raises(EntityNotFoundError):
            await services.inventory_service.delete_item(999)


class TestReservation:
    async def test_full_reservation_cycle(self, services, product):
        inventory = services.inventory_service

        item_id = await inventory.pre_reserve(product.id)
        assert (await inventory.get_item(item_id)).status == ItemStatus.PRE_RESERVED
        assert await inventory.count_available(product.id) == 2

        await inventory.confirm_reserve(item_id)
        await inventory.mark_performed(item_id)

        item = await inventory.get_item(item_id)
        assert item.status == ItemStatus.PERFORMED
        assert item.version == 4

    async def test_no_stock(self, services, product):
        inventory = services.inventory_service
        for _ in range(3):
            await inventory.pre_reserve(product.id)

        with pytest.raises(NoStockError) as exc_info:
            await inventory.pre_reserve(product.id)
        assert exc_info.value.product_id == product.id

    async def test_concurrent_pre_reserve_takes_distinct_items(self, services, product):
        """K покупателей на N единиц: ровно N успешных резервов, все разные"""
        inventory = services.inventory_service

        results = await asyncio.gather(
            *(inventory.pre_reserve(product.id) for _ in range(6)), return_exceptions=True
        )

        reserved = [r for r in results if isinstance(r, int)]
        failures = [r for r in results if isinstance(r, Exception)]
        assert len(reserved) == 3
        assert len(set(reserved)) == 3
        assert len(failures) == 3
        assert all(isinstance(error, NoStockError) for error in failures)
        assert await inventory.count_available(product.id) == 0

    async def test_release_returns_item_to_sale(self, services, product):
        inventory = services.inventory_service
        item_id = await inventory.pre_reserve(product.id)
        await inventory.confirm_reserve(item_id)

        assert await inventory.release(item_id) is True
        assert await inventory.release(item_id) is False
        assert await inventory.count_available(product.id) == 3

    async def test_performed_item_cannot_be_released(self, services, product):
        inventory = services.inventory_service
        item_id = await inventory.pre_reserve(product.id)
        await inventory.confirm_reserve(item_id)
        await inventory.mark_performed(item_id)

        with pytest.raises(IllegalTransitionError):
            await inventory.release(item_id)

    async def test_confirm_after_expiry_fails(self, services, product, later):
        """Истекший предварительный резерв нельзя подтвердить"""
        inventory = services.inventory_service
        item_id = await inventory.pre_reserve(product.id)

        assert await inventory.expire_pre_reservations(now=later(120)) == 1

        with pytest.raises(StaleTransitionError):
            await inventory.confirm_reserve(item_id)
        assert (await inventory.get_item(item_id)).status == ItemStatus.SALE


class TestExpirePreReservations:
    async def test_fresh_pre_reservations_kept(self, services, product):
        inventory = services.inventory_service
        item_id = await inventory.pre_reserve(product.id)

        assert await inventory.expire_pre_reservations() == 0
        assert (await inventory.get_item(item_id)).status == ItemStatus.PRE_RESERVED

    async def test_confirmed_reservations_untouched(self, services, product, later):
        inventory = services.inventory_service
        expired_id = await inventory.pre_reserve(product.id)
        confirmed_id = await inventory.pre_reserve(product.id)
        await inventory.confirm_reserve(confirmed_id)

        assert await inventory.expire_pre_reservations(now=later(120)) == 1

        assert (await inventory.get_item(expired_id)).status == ItemStatus.SALE
        assert (await inventory.get_item(confirmed_id)).status == ItemStatus.RESERVED
