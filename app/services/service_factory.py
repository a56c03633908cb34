"""
Factory для создания сервисов и репозиториев
"""

import logging

from app.clients.base import Notifier, TransactionLedger
from app.database.orm_database import ORMDatabase
from app.repositories import (
    InvoiceRepository,
    ItemRepository,
    OrderRepository,
    ProductRepository,
    SubscriptionRepository,
    UserRepository,
)
from app.services.inventory_service import InventoryService
from app.services.order_service import OrderService
from app.services.payment_service import PaymentService
from app.services.scheduler import ReconciliationScheduler
from app.services.subscription_service import SubscriptionService
from app.services.user_service import UserService


logger = logging.getLogger(__name__)


class ServiceFactory:
    """
    Factory для создания сервисов с инжекцией зависимостей

    Каналы связи (notifier, provider) создаются снаружи после Bot и
    передаются сюда готовыми.
    """

    def __init__(self, db: ORMDatabase, notifier: Notifier, provider: TransactionLedger):
        """
        Инициализация фабрики

        Args:
            db: Подключенная ORM база данных
            notifier: Канал уведомлений покупателей
            provider: Журнал транзакций платежного провайдера
        """
        self.db = db
        self.notifier = notifier
        self.provider = provider
        self.reset()

    # ==================== REPOSITORIES ====================

    @property
    def user_repository(self) -> UserRepository:
        """Ленивая инициализация UserRepository"""
        if self._user_repo is None:
            self._user_repo = UserRepository(self.db)
        return self._user_repo

    @property
    def product_repository(self) -> ProductRepository:
        if self._product_repo is None:
            self._product_repo = ProductRepository(self.db)
        return self._product_repo

    @property
    def item_repository(self) -> ItemRepository:
        if self._item_repo is None:
            self._item_repo = ItemRepository(self.db)
        return self._item_repo

    @property
    def order_repository(self) -> OrderRepository:
        """Ленивая инициализация OrderRepository"""
        if self._order_repo is None:
            self._order_repo = OrderRepository(self.db)
        return self._order_repo

    @property
    def invoice_repository(self) -> InvoiceRepository:
        if self._invoice_repo is None:
            self._invoice_repo = InvoiceRepository(self.db)
        return self._invoice_repo

    @property
    def subscription_repository(self) -> SubscriptionRepository:
        if self._subscription_repo is None:
            self._subscription_repo = SubscriptionRepository(self.db)
        return self._subscription_repo

    # ==================== SERVICES ====================

    @property
    def user_service(self) -> UserService:
        """Получение User Service"""
        if self._user_service is None:
            self._user_service = UserService(user_repo=self.user_repository)
        return self._user_service

    @property
    def inventory_service(self) -> InventoryService:
        """Получение Inventory Service"""
        if self._inventory_service is None:
            self._inventory_service = InventoryService(
                item_repo=self.item_repository, product_repo=self.product_repository
            )
        return self._inventory_service

    @property
    def subscription_service(self) -> SubscriptionService:
        """Получение Subscription Service"""
        if self._subscription_service is None:
            self._subscription_service = SubscriptionService(
                subscription_repo=self.subscription_repository,
                user_service=self.user_service,
                notifier=self.notifier,
            )
        return self._subscription_service

    @property
    def order_service(self) -> OrderService:
        """Получение Order Service"""
        if self._order_service is None:
            self._order_service = OrderService(
                order_repo=self.order_repository,
                inventory=self.inventory_service,
                user_service=self.user_service,
                subscription_service=self.subscription_service,
                notifier=self.notifier,
            )
        return self._order_service

    @property
    def payment_service(self) -> PaymentService:
        """Получение Payment Service"""
        if self._payment_service is None:
            self._payment_service = PaymentService(
                invoice_repo=self.invoice_repository,
                order_service=self.order_service,
                provider=self.provider,
            )
        return self._payment_service

    @property
    def scheduler(self) -> ReconciliationScheduler:
        """Планировщик фоновых задач поверх общих сервисов"""
        if self._scheduler is None:
            self._scheduler = ReconciliationScheduler(
                inventory=self.inventory_service,
                order_service=self.order_service,
                payment_service=self.payment_service,
                subscription_service=self.subscription_service,
            )
        return self._scheduler

    def reset(self):
        """Сброс кэшированных сервисов (для тестирования)"""
        self._user_repo = None
        self._product_repo = None
        self._item_repo = None
        self._order_repo = None
        self._invoice_repo = None
        self._subscription_repo = None
        self._user_service = None
        self._inventory_service = None
        self._subscription_service = None
        self._order_service = None
        self._payment_service = None
        self._scheduler = None
        logger.debug("ServiceFactory: сервисы сброшены")
