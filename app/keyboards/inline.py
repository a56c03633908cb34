"""
Inline клавиатуры
"""

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup
from aiogram.utils.keyboard import InlineKeyboardBuilder

from app.core.constants import OrderStatus
from app.database.orm_models import Product
from app.schemas.order import OrderView
from app.utils import create_callback_data, format_price


def get_catalog_keyboard(products: list[tuple[Product, int]]) -> InlineKeyboardMarkup:
    """
    Клавиатура витрины

    Args:
        products: Пары (товар, количество в продаже)

    Returns:
        InlineKeyboardMarkup
    """
    builder = InlineKeyboardBuilder()

    for product, available in products:
        builder.row(
            InlineKeyboardButton(
                text=f"{product.name} · {format_price(product.price, product.currency)} ({available} шт.)",
                callback_data=create_callback_data("buy", product.id),
            )
        )

    return builder.as_markup()


def get_order_keyboard(order: OrderView) -> InlineKeyboardMarkup | None:
    """
    Клавиатура действий с заказом

    Кнопка оплаты есть только у заказа, ожидающего оплаты.

    Args:
        order: Заказ

    Returns:
        InlineKeyboardMarkup или None
    """
    if order.status != OrderStatus.EXPECT_PAYMENTS:
        return None

    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(
            text=f"💳 Оплатить {format_price(order.total_price, order.currency)}",
            callback_data=create_callback_data("pay", order.id),
        )
    )
    return builder.as_markup()
