"""
Вспомогательные функции
"""

import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from html import escape


logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """
    Получить текущее время в UTC без tzinfo

    Все временные метки в БД хранятся как naive UTC, чтобы SQLite и
    PostgreSQL сравнивали их одинаково.

    Returns:
        naive datetime в UTC
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(dt: datetime) -> datetime:
    """
    Приведение datetime к naive UTC

    Args:
        dt: datetime с tzinfo или без (naive считается уже UTC)

    Returns:
        naive datetime в UTC
    """
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def format_datetime(dt: datetime) -> str:
    """
    Форматирование даты и времени

    Args:
        dt: Объект datetime

    Returns:
        Отформатированная строка
    """
    return dt.strftime("%d.%m.%Y %H:%M")


def format_price(amount: Decimal, currency: str) -> str:
    """
    Форматирование цены

    Args:
        amount: Сумма
        currency: Код валюты (XTR, RUB)

    Returns:
        Строка вида "100 ⭐" или "150.50 RUB"
    """
    normalized = amount.normalize() if amount == amount.to_integral_value() else amount
    text = f"{normalized:f}"
    if currency == "XTR":
        return f"{text} ⭐"
    return f"{text} {currency}"


def truncate_text(text: str, max_length: int = 100, suffix: str = "...") -> str:
    """
    Обрезка текста до максимальной длины

    Args:
        text: Исходный текст
        max_length: Максимальная длина
        suffix: Суффикс для обрезанного текста

    Returns:
        Обрезанный текст
    """
    if len(text) <= max_length:
        return text
    return text[: max_length - len(suffix)] + suffix


def escape_html(text: str | None) -> str:
    """
    Экранирование HTML для parse_mode=HTML

    Args:
        text: Исходный текст

    Returns:
        Экранированный текст
    """
    if not text:
        return ""
    return escape(str(text))


def parse_callback_data(callback_data: str) -> dict:
    """
    Парсинг callback data

    Args:
        callback_data: Строка callback data вида "action:param1:param2"

    Returns:
        Словарь с action и списком params
    """
    parts = callback_data.split(":")
    return {
        "action": parts[0] if parts else "",
        "params": parts[1:] if len(parts) > 1 else [],
    }


def create_callback_data(action: str, *params) -> str:
    """
    Создание callback data

    Args:
        action: Действие
        *params: Параметры

    Returns:
        Строка callback data
    """
    return ":".join([action] + [str(p) for p in params])


def new_correlation_id() -> str:
    """Короткий идентификатор для связи сообщения пользователю с записью в логе"""
    return uuid.uuid4().hex[:8]


def log_action(user_id: int, action: str, details: str | None = None):
    """
    Логирование действия пользователя

    Args:
        user_id: ID пользователя
        action: Действие
        details: Детали действия
    """
    log_msg = f"User {user_id} - {action}"
    if details:
        log_msg += f" - {details}"
    logger.info(log_msg)
