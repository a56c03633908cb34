"""
Константы приложения - статусы товаров, заказов, счетов и подписок
"""


class ItemStatus:
    """Статусы единиц товара на складе"""

    SALE = "sale"  # В продаже
    PRE_RESERVED = "preReserved"  # Предварительный резерв (короткий TTL)
    RESERVED = "reserved"  # Закреплен за заказом
    PERFORMED = "performed"  # Выдан покупателю
    REALIZED = "realized"  # Реализован

    @classmethod
    def all_statuses(cls) -> list[str]:
        """Список всех статусов"""
        return [cls.SALE, cls.PRE_RESERVED, cls.RESERVED, cls.PERFORMED, cls.REALIZED]

    @classmethod
    def get_status_name(cls, status: str) -> str:
        """Получение названия статуса на русском"""
        names = {
            cls.SALE: "В продаже",
            cls.PRE_RESERVED: "Предварительный резерв",
            cls.RESERVED: "Зарезервирован",
            cls.PERFORMED: "Выдан",
            cls.REALIZED: "Реализован",
        }
        return names.get(status, status)


class OrderStatus:
    """Статусы заказов"""

    FORM = "form"  # Формируется
    EXPECT_PAYMENTS = "expect_payment"  # Ожидает оплаты
    HANDLING = "handling"  # Оплата в обработке
    PROCESSING = "processing"  # Оплачен, ожидает выдачи
    PERFORMED = "performed"  # Выполнен
    CANCELLED = "cancelled"  # Отменен

    @classmethod
    def all_statuses(cls) -> list[str]:
        """Список всех статусов"""
        return [
            cls.FORM,
            cls.EXPECT_PAYMENTS,
            cls.HANDLING,
            cls.PROCESSING,
            cls.PERFORMED,
            cls.CANCELLED,
        ]

    @classmethod
    def get_status_emoji(cls, status: str) -> str:
        """Получение эмодзи для статуса"""
        emojis = {
            cls.FORM: "📝",
            cls.EXPECT_PAYMENTS: "💳",
            cls.HANDLING: "⏳",
            cls.PROCESSING: "📦",
            cls.PERFORMED: "✅",
            cls.CANCELLED: "❌",
        }
        return emojis.get(status, "")

    @classmethod
    def get_status_name(cls, status: str) -> str:
        """Получение названия статуса на русском"""
        names = {
            cls.FORM: "Формируется",
            cls.EXPECT_PAYMENTS: "Ожидает оплаты",
            cls.HANDLING: "Оплата обрабатывается",
            cls.PROCESSING: "Оплачен",
            cls.PERFORMED: "Выполнен",
            cls.CANCELLED: "Отменен",
        }
        return names.get(status, status)


class InvoiceState:
    """Состояния счетов на оплату"""

    EXPECT_PAYMENT = "expect_payment"
    HANDLING = "handling"
    PROCESSING = "processing"
    PERFORMED = "performed"
    CANCELED = "canceled"
    REFUNDED = "refunded"

    @classmethod
    def all_statuses(cls) -> list[str]:
        """Список всех состояний"""
        return [
            cls.EXPECT_PAYMENT,
            cls.HANDLING,
            cls.PROCESSING,
            cls.PERFORMED,
            cls.CANCELED,
            cls.REFUNDED,
        ]

    @classmethod
    def get_status_name(cls, status: str) -> str:
        """Получение названия состояния на русском"""
        names = {
            cls.EXPECT_PAYMENT: "Ожидает оплаты",
            cls.HANDLING: "Обрабатывается",
            cls.PROCESSING: "Оплачен",
            cls.PERFORMED: "Проведен",
            cls.CANCELED: "Отменен",
            cls.REFUNDED: "Возвращен",
        }
        return names.get(status, status)


class SubscriptionState:
    """Состояния подписок"""

    ACTIVE = "active"
    INACTIVE = "inactive"

    @classmethod
    def all_statuses(cls) -> list[str]:
        """Список всех состояний"""
        return [cls.ACTIVE, cls.INACTIVE]

    @classmethod
    def get_status_name(cls, status: str) -> str:
        """Получение названия состояния на русском"""
        names = {
            cls.ACTIVE: "Активна",
            cls.INACTIVE: "Истекла",
        }
        return names.get(status, status)


class Currency:
    """Валюты"""

    XTR = "XTR"  # Telegram Stars
    RUB = "RUB"

    @classmethod
    def all_currencies(cls) -> list[str]:
        """Список всех валют"""
        return [cls.XTR, cls.RUB]


class PaymentMethod:
    """Способы оплаты"""

    TELEGRAM = "telegram"

    @classmethod
    def all_methods(cls) -> list[str]:
        """Список всех способов оплаты"""
        return [cls.TELEGRAM]


class ProductType:
    """Типы товаров"""

    SUBSCRIPTION = "subscription"
