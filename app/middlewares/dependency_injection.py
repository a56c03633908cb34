"""
Middleware для инжекции зависимостей (Dependency Injection)
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from aiogram import BaseMiddleware
from aiogram.types import TelegramObject

from app.services.service_factory import ServiceFactory


logger = logging.getLogger(__name__)


class DependencyInjectionMiddleware(BaseMiddleware):
    """
    Middleware для инжекции ServiceFactory и сервисов в handlers

    Handlers получают зависимости параметрами по имени: services,
    user_service, inventory, order_service, payment_service,
    subscription_service.
    """

    def __init__(self, services: ServiceFactory):
        """
        Инициализация

        Args:
            services: Общая фабрика сервисов (singleton)
        """
        super().__init__()
        self.services = services

    async def __call__(
        self,
        handler: Callable[[TelegramObject, dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: dict[str, Any],
    ) -> Any:
        """
        Инжектирует зависимости в data для использования в handlers

        Args:
            handler: Следующий handler
            event: Событие (Message, CallbackQuery, PreCheckoutQuery)
            data: Данные для передачи в handler

        Returns:
            Результат выполнения handler
        """
        data["services"] = self.services
        data["user_service"] = self.services.user_service
        data["inventory"] = self.services.inventory_service
        data["order_service"] = self.services.order_service
        data["payment_service"] = self.services.payment_service
        data["subscription_service"] = self.services.subscription_service

        return await handler(event, data)
