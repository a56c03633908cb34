"""
Обработчики заказов и подписок покупателя
"""

import logging

from aiogram import F, Router
from aiogram.filters import Command
from aiogram.types import CallbackQuery, Message

from app.core.config import Config, Messages
from app.core.constants import OrderStatus, SubscriptionState
from app.keyboards.inline import get_order_keyboard
from app.keyboards.reply import ORDERS_BUTTON, SUBSCRIPTIONS_BUTTON
from app.repositories import NoStockError
from app.schemas.order import OrderView
from app.services import OrderService, SubscriptionService, UserService
from app.utils import escape_html, format_datetime, format_price, log_action, parse_callback_data


logger = logging.getLogger(__name__)

router = Router(name="orders")


def format_order(order: OrderView) -> str:
    """Карточка заказа для сообщения"""
    title = escape_html(order.product.title) if order.product else "—"
    return (
        f"{OrderStatus.get_status_emoji(order.status)} <b>Заказ № {order.id}</b>\n"
        f"Товар: {title}\n"
        f"Сумма: {format_price(order.total_price, order.currency)}\n"
        f"Статус: {OrderStatus.get_status_name(order.status)}\n"
        f"Создан: {format_datetime(order.created_at)} UTC"
    )


@router.callback_query(F.data.startswith("buy:"))
async def callback_buy(
    callback: CallbackQuery, user_service: UserService, order_service: OrderService
):
    """
    Покупка товара с витрины

    Создает заказ и сразу предлагает его оплатить.
    """
    product_id = int(parse_callback_data(callback.data)["params"][0])
    user = await user_service.register_telegram_user(
        telegram_id=callback.from_user.id,
        chat_id=callback.message.chat.id,
        username=callback.from_user.username,
    )

    try:
        order_id = await order_service.create_order(user.id, product_id)
    except NoStockError:
        await callback.answer(Messages.ERROR_NO_STOCK, show_alert=True)
        return

    log_action(callback.from_user.id, "CREATE_ORDER", f"order #{order_id}, product #{product_id}")
    order = await order_service.get_order(order_id, user.id)

    await callback.message.answer(
        Messages.ORDER_CREATED.format(order_id=order_id, minutes=Config.ORDER_TIME_LIMIT // 60)
        + "\n\n"
        + format_order(order),
        reply_markup=get_order_keyboard(order),
    )
    await callback.answer()


@router.message(Command("orders"))
@router.message(F.text == ORDERS_BUTTON)
async def cmd_orders(message: Message, user_service: UserService, order_service: OrderService):
    """Последние заказы покупателя"""
    user = await user_service.register_telegram_user(
        telegram_id=message.from_user.id,
        chat_id=message.chat.id,
        username=message.from_user.username,
    )
    orders = await order_service.get_order_list(user.id)
    if not orders:
        await message.answer(Messages.NO_ORDERS)
        return

    for order in orders:
        await message.answer(format_order(order), reply_markup=get_order_keyboard(order))


@router.message(Command("subscriptions"))
@router.message(F.text == SUBSCRIPTIONS_BUTTON)
async def cmd_subscriptions(
    message: Message, user_service: UserService, subscription_service: SubscriptionService
):
    """Подписки покупателя"""
    user = await user_service.register_telegram_user(
        telegram_id=message.from_user.id,
        chat_id=message.chat.id,
        username=message.from_user.username,
    )
    subscriptions = await subscription_service.get_user_subscriptions(user.id)
    if not subscriptions:
        await message.answer(Messages.NO_SUBSCRIPTIONS)
        return

    lines = ["🔑 <b>Ваши подписки</b>\n"]
    for subscription in subscriptions:
        mark = "🟢" if subscription.state == SubscriptionState.ACTIVE else "⚪️"
        lines.append(
            f"{mark} № {subscription.id} · заказ № {subscription.order_id} · "
            f"{SubscriptionState.get_status_name(subscription.state)} до "
            f"{format_datetime(subscription.deadline)} UTC"
        )
    await message.answer("\n".join(lines))
