"""
Конфигурация бота
"""

import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Настройки приложения из переменных окружения"""

    # Telegram
    BOT_TOKEN: str = os.getenv("BOT_TOKEN", "")

    # База данных
    DATABASE_PATH: str = os.getenv("DATABASE_PATH", "shop_database.db")
    DATABASE_URL: str | None = os.getenv("DATABASE_URL")

    # Логирование и мониторинг
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOGS_DIR: str = os.getenv("LOGS_DIR", "logs")
    SENTRY_DSN: str | None = os.getenv("SENTRY_DSN")
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "production")
    DEV_MODE: bool = _get_bool("DEV_MODE")

    # Время жизни (секунды)
    ORDER_TIME_LIMIT: int = int(os.getenv("ORDER_TIME_LIMIT", "900"))  # 15 минут на оплату
    PRERESERVE_TTL: int = int(os.getenv("PRERESERVE_TTL", "60"))
    HANDLING_TIMEOUT: int = int(os.getenv("HANDLING_TIMEOUT", "60"))

    # Интервалы фоновых задач (секунды)
    PRERESERVE_EXPIRY_INTERVAL: int = int(os.getenv("PRERESERVE_EXPIRY_INTERVAL", "20"))
    ORDER_JOB_INTERVAL: int = int(os.getenv("ORDER_JOB_INTERVAL", "5"))
    INVOICE_JOB_INTERVAL: int = int(os.getenv("INVOICE_JOB_INTERVAL", "5"))
    HANDLING_JOB_INTERVAL: int = int(os.getenv("HANDLING_JOB_INTERVAL", "30"))
    SUBSCRIPTION_JOB_INTERVAL: int = int(os.getenv("SUBSCRIPTION_JOB_INTERVAL", "20"))
    REDELIVERY_INTERVAL: int = int(os.getenv("REDELIVERY_INTERVAL", "30"))

    # Размеры пачек для фоновых задач
    ORDER_BATCH_SIZE: int = 15
    INVOICE_BATCH_SIZE: int = 15
    ITEM_BATCH_SIZE: int = 30
    SUBSCRIPTION_BATCH_SIZE: int = 30

    # Журнал транзакций платежного провайдера
    PROVIDER_PAGE_SIZE: int = int(os.getenv("PROVIDER_PAGE_SIZE", "18"))
    PROVIDER_MAX_PAGES: int = int(os.getenv("PROVIDER_MAX_PAGES", "50"))

    # Уведомления
    NOTIFY_MAX_ATTEMPTS: int = int(os.getenv("NOTIFY_MAX_ATTEMPTS", "3"))

    @classmethod
    def validate(cls) -> bool:
        """
        Проверка обязательных настроек

        Returns:
            True если конфигурация корректна

        Raises:
            ValueError: Если настройка отсутствует или некорректна
        """
        if not cls.BOT_TOKEN:
            raise ValueError("BOT_TOKEN не установлен в переменных окружения")

        durations = {
            "ORDER_TIME_LIMIT": cls.ORDER_TIME_LIMIT,
            "PRERESERVE_TTL": cls.PRERESERVE_TTL,
            "HANDLING_TIMEOUT": cls.HANDLING_TIMEOUT,
            "PROVIDER_PAGE_SIZE": cls.PROVIDER_PAGE_SIZE,
            "PROVIDER_MAX_PAGES": cls.PROVIDER_MAX_PAGES,
        }
        for name, value in durations.items():
            if value <= 0:
                raise ValueError(f"{name} должен быть положительным, получено {value}")

        return True


class Messages:
    """Тексты сообщений для пользователей"""

    WELCOME = (
        "👋 <b>Добро пожаловать в магазин!</b>\n\n"
        "Выберите товар из каталога ниже. Оплата принимается в Telegram Stars."
    )
    CATALOG_EMPTY = "🛒 Сейчас в продаже ничего нет, загляните позже."
    NO_ORDERS = "📭 У вас пока нет заказов."
    NO_SUBSCRIPTIONS = "📭 У вас нет подписок."

    ORDER_TITLE = "Заказ № {order_id}"
    ORDER_CREATED = "🧾 Заказ № {order_id} создан.\nОплатите его в течение {minutes} мин."
    ORDER_PAID = "Заказ оплачен, ожидайте товар придет отдельным сообщением"
    ORDER_CANCELLED = "Отменен по истечению времени жизни"
    ORDER_PAYLOAD = "Полезная нагрузка: {payload}"

    SUBSCRIPTION_EXPIRED_TITLE = "Ваша подписка истекла"
    SUBSCRIPTION_DESCRIPTION = "Обновите продукт"

    ERROR_NO_STOCK = "😔 Товар закончился. Попробуйте позже."
    ERROR_ORDER_CLOSED = "⚠️ Заказ уже нельзя оплатить."
    ERROR_NOT_FOUND = "⚠️ Заказ не найден."
    ERROR_GENERIC = (
        "❌ Произошла ошибка. Попробуйте позже или обратитесь в поддержку.\n"
        "Код ошибки: <code>{correlation_id}</code>"
    )
