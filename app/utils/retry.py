"""
Повтор запросов к Bot API с экспоненциальной задержкой
"""
import asyncio
import logging
from functools import wraps
from typing import Any, Callable, TypeVar

from aiogram.exceptions import (
    TelegramAPIError,
    TelegramNetworkError,
    TelegramRetryAfter,
    TelegramServerError,
)


logger = logging.getLogger(__name__)

T = TypeVar("T")

# Временные сбои: сеть и 5xx
RETRYABLE_EXCEPTIONS = (
    TelegramNetworkError,
    TelegramServerError,
)


def backoff_delay(attempt: int, base_delay: float, exponential_base: float, max_delay: float):
    """Задержка перед попыткой attempt + 1 (attempt считается с 1)"""
    return min(base_delay * (exponential_base ** (attempt - 1)), max_delay)


def retry_on_telegram_error(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    exceptions: tuple = RETRYABLE_EXCEPTIONS,
    reraise: bool = False,
) -> Callable:
    """
    Декоратор повтора запросов к Bot API

    Временные ошибки повторяются с экспоненциальной задержкой, на 429
    выдерживается пауза retry_after (не больше max_delay). Остальные
    ошибки Telegram не повторяются.

    Args:
        max_attempts: Максимальное количество попыток
        base_delay: Задержка перед второй попыткой (секунды)
        max_delay: Верхняя граница задержки (секунды)
        exponential_base: Множитель роста задержки
        exceptions: Исключения, которые повторяются
        reraise: Пробрасывать последнюю ошибку вместо возврата None

    Example:
        @retry_on_telegram_error(max_attempts=5, reraise=True)
        async def send(bot, chat_id, text):
            return await bot.send_message(chat_id, text)
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        name = func.__name__

        def give_up(error: Exception) -> None:
            logger.error(f"{name}: запрос не выполнен ({type(error).__name__}: {error})")
            if reraise:
                raise error

        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T | None:
            for attempt in range(1, max_attempts + 1):
                last_attempt = attempt == max_attempts
                try:
                    return await func(*args, **kwargs)
                except TelegramRetryAfter as e:
                    logger.warning(
                        f"{name}: flood control, ждем {e.retry_after} с "
                        f"(попытка {attempt}/{max_attempts})"
                    )
                    if last_attempt:
                        give_up(e)
                        return None
                    await asyncio.sleep(min(e.retry_after, max_delay))
                except exceptions as e:
                    logger.warning(
                        f"{name}: {type(e).__name__} (попытка {attempt}/{max_attempts}): {e}"
                    )
                    if last_attempt:
                        give_up(e)
                        return None
                    await asyncio.sleep(
                        backoff_delay(attempt, base_delay, exponential_base, max_delay)
                    )
                except TelegramAPIError as e:
                    give_up(e)
                    return None
            return None

        return wrapper

    return decorator
