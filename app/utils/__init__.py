"""Утилиты и вспомогательные функции"""
from app.utils.helpers import (
    create_callback_data,
    escape_html,
    format_datetime,
    format_price,
    log_action,
    new_correlation_id,
    parse_callback_data,
    to_naive_utc,
    truncate_text,
    utc_now,
)
from app.utils.retry import retry_on_telegram_error


__all__ = [
    # Callback utilities
    "create_callback_data",
    # Format utilities
    "escape_html",
    "format_datetime",
    "format_price",
    # Logging
    "log_action",
    "new_correlation_id",
    "parse_callback_data",
    # Retry utilities
    "retry_on_telegram_error",
    # DateTime utilities
    "to_naive_utc",
    "truncate_text",
    "utc_now",
]
