"""Ядро приложения - конфигурация, константы и исключения"""

from app.core.config import Config, Messages
from app.core.constants import (
    Currency,
    InvoiceState,
    ItemStatus,
    OrderStatus,
    PaymentMethod,
    ProductType,
    SubscriptionState,
)


__all__ = [
    "Config",
    "Currency",
    "InvoiceState",
    "ItemStatus",
    "Messages",
    "OrderStatus",
    "PaymentMethod",
    "ProductType",
    "SubscriptionState",
]
