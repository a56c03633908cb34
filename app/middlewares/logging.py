"""
Middleware для логирования входящих событий и времени обработки
"""

import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from aiogram import BaseMiddleware
from aiogram.types import CallbackQuery, Message, PreCheckoutQuery, TelegramObject

from app.utils.helpers import truncate_text


logger = logging.getLogger(__name__)


class LoggingMiddleware(BaseMiddleware):
    """
    Middleware для централизованного логирования всех событий

    Логирует входящие сообщения, callback и pre-checkout запросы вместе
    со временем обработки.
    """

    def __init__(self, log_level: int = logging.INFO):
        """
        Инициализация

        Args:
            log_level: Уровень логирования (по умолчанию INFO)
        """
        super().__init__()
        self.log_level = log_level

    async def __call__(
        self,
        handler: Callable[[TelegramObject, dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: dict[str, Any],
    ) -> Any:
        """
        Обработка события с логированием

        Args:
            handler: Следующий handler
            event: Событие
            data: Данные

        Returns:
            Результат выполнения handler
        """
        if not isinstance(event, (Message, CallbackQuery, PreCheckoutQuery)):
            return await handler(event, data)

        user = event.from_user
        user_info = f"{user.id}" if user else "unknown"

        start_time = time.time()

        logger.log(self.log_level, f"{self._describe(event)} от {user_info}")

        try:
            result = await handler(event, data)
        except Exception as e:
            duration = time.time() - start_time
            logger.error(f"[ERROR] After {duration:.2f}s for {user_info}: {type(e).__name__}: {e}")
            raise

        duration = time.time() - start_time
        if duration > 1.0:
            logger.warning(f"[SLOW] Handler processed in {duration:.2f}s by {user_info}")
        else:
            logger.debug(f"[OK] Processed in {duration:.3f}s")

        return result

    @staticmethod
    def _describe(event: Message | CallbackQuery | PreCheckoutQuery) -> str:
        if isinstance(event, CallbackQuery):
            return f"[CALLBACK] {truncate_text(event.data or '[no data]', 100)}"
        if isinstance(event, PreCheckoutQuery):
            return f"[CHECKOUT] payload={event.invoice_payload}"
        if event.successful_payment:
            return f"[PAYMENT] payload={event.successful_payment.invoice_payload}"
        preview = truncate_text(event.text, 53) if event.text else "[other media]"
        return f"[MSG] {event.chat.type}: {preview}"
