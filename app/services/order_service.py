"""
Сервис для работы с заказами (бизнес-логика)
"""

import logging
from datetime import datetime, timedelta

from app.clients.base import Notifier
from app.core.config import Config, Messages
from app.core.constants import ItemStatus, OrderStatus
from app.core.exceptions import ForbiddenError, ShopError
from app.database.orm_models import Order
from app.domain.state_machines import EqualStateError, IllegalTransitionError, OrderStateMachine
from app.repositories import EntityNotFoundError, OrderRepository, StaleTransitionError
from app.schemas.order import OrderFilters, OrderProduct, OrderView
from app.services.inventory_service import InventoryService
from app.services.subscription_service import SubscriptionService
from app.services.user_service import UserService
from app.utils.helpers import utc_now


logger = logging.getLogger(__name__)

# Статусы, о переходе в которые покупатель получает сообщение
NOTIFY_STATUSES = (OrderStatus.PROCESSING, OrderStatus.PERFORMED, OrderStatus.CANCELLED)


class OrderService:
    """
    Сервис для управления заказами

    Порядок побочных эффектов: сначала фиксируется статус, затем
    отправляется уведомление. Доставленное уведомление отмечается в
    notified_status, недоставленные повторяются задачей
    redeliver_notifications.
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        inventory: InventoryService,
        user_service: UserService,
        subscription_service: SubscriptionService,
        notifier: Notifier,
        order_time_limit: int | None = None,
        batch_size: int | None = None,
    ):
        """
        Инициализация сервиса

        Args:
            order_repo: Репозиторий заказов
            inventory: Сервис склада
            user_service: Справочник пользователей
            subscription_service: Сервис подписок
            notifier: Канал уведомлений
            order_time_limit: Время на оплату (секунды)
            batch_size: Размер пачки для фоновых задач
        """
        self.order_repo = order_repo
        self.inventory = inventory
        self.user_service = user_service
        self.subscription_service = subscription_service
        self.notifier = notifier
        self.order_time_limit = timedelta(seconds=order_time_limit or Config.ORDER_TIME_LIMIT)
        self.batch_size = batch_size or Config.ORDER_BATCH_SIZE

    # ==================== PUBLIC API ====================

    async def create_order(self, user_id: int, product_id: int) -> int:
        """
        Создание заказа

        Если подтвердить резерв не удалось, заказ остается в статусе form
        и будет отменен фоновой задачей по TTL.

        Args:
            user_id: ID покупателя
            product_id: ID товара

        Returns:
            ID заказа

        Raises:
            EntityNotFoundError: Если товара нет
            NoStockError: Если товар закончился
            StaleTransitionError: Если предварительный резерв истек до подтверждения
        """
        product = await self.inventory.get_product(product_id)
        item_id = await self.inventory.pre_reserve(product_id)

        order = await self.order_repo.create(
            user_id=user_id,
            item_id=item_id,
            total_price=product.price,
            currency=product.currency,
            ttl=utc_now() + self.order_time_limit,
        )

        try:
            await self.inventory.confirm_reserve(item_id)
        except ShopError as e:
            logger.error(f"Заказ #{order.id}: не удалось подтвердить резерв item #{item_id}: {e}")
            raise

        try:
            await self.order_repo.move_to(order.id, OrderStatus.EXPECT_PAYMENTS)
        except ShopError as e:
            logger.error(f"Заказ #{order.id}: не удалось перевести в ожидание оплаты: {e}")

        return order.id

    async def get_order(self, order_id: int, user_id: int) -> OrderView:
        """
        Заказ покупателя

        Raises:
            EntityNotFoundError: Если заказа нет
            ForbiddenError: Если заказ принадлежит другому пользователю
        """
        order = await self.order_repo.get_by_id(order_id)
        if order.user_id != user_id:
            raise ForbiddenError("Order", order_id, user_id)
        return await self._to_view(order)

    async def get_order_list(
        self, user_id: int, filters: OrderFilters | None = None
    ) -> list[OrderView]:
        """
        Список заказов покупателя

        Фильтр всегда ограничивается заказами вызывающего пользователя.
        """
        filters = (filters or OrderFilters()).model_copy(update={"user_id": user_id})
        orders = await self.order_repo.list_orders(filters)
        return [await self._to_view(order) for order in orders]

    async def get_status(self, order_id: int) -> str:
        """Текущий статус заказа (для каскадов из других сервисов)"""
        return (await self.order_repo.get_by_id(order_id)).status

    async def payment_handling(self, order_id: int) -> None:
        """
        Начало оплаты: expect_payment → handling

        Raises:
            IllegalTransitionError: Если заказ уже нельзя оплатить
        """
        try:
            await self.order_repo.move_to(order_id, OrderStatus.HANDLING)
        except EqualStateError:
            return
        logger.info(f"Заказ #{order_id}: оплата в обработке")

    async def processing(self, order_id: int) -> None:
        """
        Оплата подтверждена: handling → processing, уведомление покупателя

        Повторный вызов не меняет статус и не дублирует уведомление.
        """
        try:
            await self.order_repo.move_to(order_id, OrderStatus.PROCESSING)
            logger.info(f"Заказ #{order_id} оплачен")
        except EqualStateError:
            logger.debug(f"Заказ #{order_id} уже оплачен")

        await self._notify_if_pending(await self.order_repo.get_by_id(order_id))

    async def canceled(self, order_id: int) -> None:
        """
        Отмена заказа: → cancelled, возврат товара, уведомление покупателя

        Raises:
            IllegalTransitionError: Если заказ уже оплачен или выполнен
        """
        transition = None
        try:
            transition = await self.order_repo.move_to(order_id, OrderStatus.CANCELLED)
            logger.info(f"Заказ #{order_id} отменен")
        except EqualStateError:
            logger.debug(f"Заказ #{order_id} уже отменен")

        order = await self.order_repo.get_by_id(order_id)
        if transition is not None:
            await self._release_item(order, was_formed=transition.from_status == OrderStatus.FORM)
        await self._notify_if_pending(order)

    # ==================== BACKGROUND ====================

    async def process_confirmed_orders(self, now: datetime | None = None) -> int:
        """
        Фоновая задача: выдача оплаченных заказов

        Для каждого заказа в processing: товар отмечается выданным,
        выдается подписка, заказ переводится в performed, покупатель
        получает содержимое товара. Каждый шаг идемпотентен, поэтому
        прерванная обработка безопасно повторяется следующим запуском.

        Returns:
            Количество выполненных заказов
        """
        now = now or utc_now()
        performed = 0

        for order in await self.order_repo.find_by_status(OrderStatus.PROCESSING, self.batch_size):
            try:
                item = await self._mark_item_performed(order)
                if item is None:
                    await self.order_repo.touch(order.id)
                    continue

                # Оплаченный заказ выдается, даже если товар уже снят с витрины
                product = await self.inventory.get_product(item.product_id, include_deleted=True)
                await self.subscription_service.create_subscription(
                    user_id=order.user_id,
                    order_id=order.id,
                    deadline=now + timedelta(seconds=product.subscription_period),
                    created_at=now,
                )

                await self.order_repo.move_to(order.id, OrderStatus.PERFORMED)
            except (EqualStateError, StaleTransitionError):
                logger.debug(f"Заказ #{order.id} уже обработан другим процессом")
                continue
            except ShopError as e:
                logger.error(f"Заказ #{order.id}: ошибка выдачи: {e}")
                await self.order_repo.touch(order.id)
                continue

            performed += 1
            logger.info(f"Заказ #{order.id} выполнен")
            await self._notify(order.id, order.user_id, OrderStatus.PERFORMED, item.payload)

        return performed

    async def cancel_expired_orders(self, now: datetime | None = None) -> int:
        """
        Фоновая задача: отмена неоплаченных заказов с истекшим TTL

        Returns:
            Количество отмененных заказов
        """
        now = now or utc_now()
        cancelled = 0
        expired = await self.order_repo.find_expired(
            [OrderStatus.FORM, OrderStatus.EXPECT_PAYMENTS], now, self.batch_size
        )

        for order in expired:
            try:
                # Условный переход от прочитанного статуса: начатую оплату не трогаем
                transition = OrderStateMachine.request_transition(
                    order.status, OrderStatus.CANCELLED
                )
                await self.order_repo.change_status(order.id, transition)
            except (StaleTransitionError, IllegalTransitionError) as e:
                # Заказ успели оплатить или отменить
                logger.debug(f"Заказ #{order.id} не отменен по TTL: {e}")
                continue

            cancelled += 1
            logger.info(f"Заказ #{order.id} отменен по истечению TTL")
            await self._release_item(order, was_formed=transition.from_status == OrderStatus.FORM)
            await self._notify(order.id, order.user_id, OrderStatus.CANCELLED)

        return cancelled

    async def redeliver_notifications(self) -> int:
        """
        Фоновая задача: повтор недоставленных уведомлений

        Returns:
            Количество доставленных уведомлений
        """
        delivered = 0
        pending = await self.order_repo.find_pending_notifications(
            list(NOTIFY_STATUSES), self.batch_size
        )
        for order in pending:
            if await self._notify_if_pending(order):
                delivered += 1
        return delivered

    # ==================== HELPERS ====================

    async def _to_view(self, order: Order) -> OrderView:
        """Заказ с актуальным снимком товара"""
        view = OrderView.model_validate(order)
        try:
            item = await self.inventory.get_item(order.item_id)
            product = await self.inventory.get_product(item.product_id, include_deleted=True)
        except EntityNotFoundError:
            logger.warning(f"Заказ #{order.id}: товар не найден")
            return view

        view.product = OrderProduct(
            item_id=item.id,
            product_id=product.id,
            title=product.name,
            description=product.description,
        )
        return view

    async def _mark_item_performed(self, order: Order):
        """Отметка товара выданным (повторно - без ошибки)"""
        try:
            await self.inventory.mark_performed(order.item_id)
        except StaleTransitionError:
            item = await self.inventory.get_item(order.item_id)
            if item.status != ItemStatus.PERFORMED:
                logger.error(
                    f"Заказ #{order.id}: item #{item.id} в статусе {item.status}, выдача невозможна"
                )
                return None
            return item
        return await self.inventory.get_item(order.item_id)

    async def _release_item(self, order: Order, was_formed: bool) -> None:
        """
        Возврат товара отмененного заказа в продажу

        Заказ в статусе form мог не подтвердить резерв: тогда единица уже
        может принадлежать другому покупателю и трогать ее нельзя. Свой
        неподтвержденный предварительный резерв вернет expire_pre_reservations.
        """
        try:
            if was_formed:
                await self.inventory.release_unclaimed(order.item_id, order.id)
            else:
                await self.inventory.release(order.item_id)
        except ShopError as e:
            logger.warning(f"Заказ #{order.id}: не удалось вернуть item #{order.item_id}: {e}")

    async def _notify_if_pending(self, order: Order) -> bool:
        """Уведомление о текущем статусе, если оно еще не доставлено"""
        if order.status not in NOTIFY_STATUSES or order.notified_status == order.status:
            return False

        payload = None
        if order.status == OrderStatus.PERFORMED:
            payload = (await self.inventory.get_item(order.item_id)).payload
        return await self._notify(order.id, order.user_id, order.status, payload)

    async def _notify(
        self, order_id: int, user_id: int, status: str, payload: str | None = None
    ) -> bool:
        """
        Отправка уведомления о статусе заказа

        Ошибки доставки логируются и не прерывают обработку: уведомление
        будет повторено задачей redeliver_notifications.

        Returns:
            True если уведомление доставлено
        """
        bodies = {
            OrderStatus.PROCESSING: Messages.ORDER_PAID,
            OrderStatus.CANCELLED: Messages.ORDER_CANCELLED,
            OrderStatus.PERFORMED: Messages.ORDER_PAYLOAD.format(payload=payload),
        }
        try:
            user = await self.user_service.get_user(user_id)
            await self.notifier.send(
                user.chat_id, Messages.ORDER_TITLE.format(order_id=order_id), bodies[status]
            )
        except ShopError as e:
            logger.warning(f"Заказ #{order_id}: уведомление не доставлено: {e}")
            return False

        await self.order_repo.mark_notified(order_id, status)
        return True
