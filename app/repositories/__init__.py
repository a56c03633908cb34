"""
Repository layer для абстракции работы с базой данных
"""

from app.repositories.base import BaseRepository
from app.repositories.exceptions import (
    EntityNotFoundError,
    ItemNotDeletableError,
    NoStockError,
    StaleTransitionError,
)
from app.repositories.invoice_repository import InvoiceRepository
from app.repositories.item_repository import ItemRepository
from app.repositories.order_repository import OrderRepository
from app.repositories.product_repository import ProductRepository
from app.repositories.subscription_repository import SubscriptionRepository
from app.repositories.user_repository import UserRepository


__all__ = [
    "BaseRepository",
    "EntityNotFoundError",
    "InvoiceRepository",
    "ItemNotDeletableError",
    "ItemRepository",
    "NoStockError",
    "OrderRepository",
    "ProductRepository",
    "StaleTransitionError",
    "SubscriptionRepository",
    "UserRepository",
]
