"""
Reply клавиатуры
"""

from aiogram.types import KeyboardButton, ReplyKeyboardMarkup
from aiogram.utils.keyboard import ReplyKeyboardBuilder


CATALOG_BUTTON = "🛒 Каталог"
ORDERS_BUTTON = "📋 Мои заказы"
SUBSCRIPTIONS_BUTTON = "🔑 Мои подписки"


def get_main_menu_keyboard() -> ReplyKeyboardMarkup:
    """
    Главное меню покупателя

    Returns:
        ReplyKeyboardMarkup
    """
    builder = ReplyKeyboardBuilder()
    builder.row(KeyboardButton(text=CATALOG_BUTTON))
    builder.row(KeyboardButton(text=ORDERS_BUTTON), KeyboardButton(text=SUBSCRIPTIONS_BUTTON))
    return builder.as_markup(resize_keyboard=True)
