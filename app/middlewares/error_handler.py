"""Global error handler"""
import logging

from aiogram.types import ErrorEvent

from app.core.config import Messages
from app.core.exceptions import ShopError
from app.utils.helpers import new_correlation_id


logger = logging.getLogger(__name__)


async def global_error_handler(event: ErrorEvent) -> bool:
    """
    Глобальная обработка всех необработанных исключений

    Пользователь получает короткий код ошибки, по которому ее можно
    найти в логах.
    """
    correlation_id = new_correlation_id()
    update = event.update

    user_id = None
    if update.message and update.message.from_user:
        user_id = update.message.from_user.id
    elif update.callback_query:
        user_id = update.callback_query.from_user.id
    elif update.pre_checkout_query:
        user_id = update.pre_checkout_query.from_user.id

    group = event.exception.group if isinstance(event.exception, ShopError) else "internal"

    logger.error(
        "❌ UNHANDLED ERROR [%s] | Update: %s | User: %s | Group: %s | Type: %s | Message: %s",
        correlation_id,
        update.update_id,
        user_id,
        group,
        type(event.exception).__name__,
        event.exception,
    )
    logger.exception(
        "Full traceback for update %s:", update.update_id, exc_info=event.exception
    )

    text = Messages.ERROR_GENERIC.format(correlation_id=correlation_id)
    if update.message:
        try:
            await update.message.answer(text, parse_mode="HTML")
        except Exception as e:
            logger.error("Failed to send error message to user: %s", e)
    elif update.callback_query:
        try:
            await update.callback_query.answer(
                f"❌ Ошибка. Код: {correlation_id}", show_alert=True
            )
        except Exception as e:
            logger.error("Failed to send error callback to user: %s", e)

    return True
