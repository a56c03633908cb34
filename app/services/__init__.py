"""
Сервисы бизнес-логики магазина
"""

from app.services.inventory_service import InventoryService
from app.services.order_service import OrderService
from app.services.payment_service import PaymentService
from app.services.scheduler import ReconciliationScheduler
from app.services.service_factory import ServiceFactory
from app.services.subscription_service import SubscriptionService
from app.services.user_service import UserService


__all__ = [
    "InventoryService",
    "OrderService",
    "PaymentService",
    "ReconciliationScheduler",
    "ServiceFactory",
    "SubscriptionService",
    "UserService",
]
