"""
Обработчики оплаты через Telegram Stars

Колбэки провайдера только ускоряют оплату: если какой-то из них потерян,
счет доведут до конца фоновые задачи сверки.
"""

import logging

from aiogram import F, Router
from aiogram.types import CallbackQuery, LabeledPrice, Message, PreCheckoutQuery

from app.core.config import Messages
from app.core.constants import OrderStatus
from app.core.exceptions import BadRequestError, ForbiddenError, NotFoundError, ShopError
from app.schemas.payment import parse_invoice_payload
from app.services import OrderService, PaymentService, UserService
from app.utils import log_action, parse_callback_data


logger = logging.getLogger(__name__)

router = Router(name="payment")


@router.callback_query(F.data.startswith("pay:"))
async def callback_pay(
    callback: CallbackQuery,
    user_service: UserService,
    order_service: OrderService,
    payment_service: PaymentService,
):
    """
    Выставление счета по заказу

    Args:
        callback: Callback query вида pay:{order_id}
    """
    order_id = int(parse_callback_data(callback.data)["params"][0])
    user = await user_service.register_telegram_user(
        telegram_id=callback.from_user.id,
        chat_id=callback.message.chat.id,
        username=callback.from_user.username,
    )

    try:
        order = await order_service.get_order(order_id, user.id)
    except (NotFoundError, ForbiddenError) as e:
        logger.warning(f"User {callback.from_user.id}: заказ #{order_id} недоступен: {e}")
        await callback.answer(Messages.ERROR_NOT_FOUND, show_alert=True)
        return

    if order.status != OrderStatus.EXPECT_PAYMENTS:
        await callback.answer(Messages.ERROR_ORDER_CLOSED, show_alert=True)
        return

    invoice = await payment_service.create_invoice(order_id, user.id)
    log_action(callback.from_user.id, "CREATE_INVOICE", f"invoice #{invoice.invoice_id}")

    await callback.bot.send_invoice(
        chat_id=callback.message.chat.id,
        title=invoice.title,
        description=invoice.description,
        payload=invoice.payload,
        currency=invoice.currency,
        prices=[LabeledPrice(label=invoice.title, amount=invoice.minor_amount)],
    )
    await callback.answer()


@router.pre_checkout_query()
async def pre_checkout(query: PreCheckoutQuery, payment_service: PaymentService):
    """
    Подтверждение платежа перед списанием

    Счет и заказ переводятся в handling. Если заказ уже закрыт, платеж
    отклоняется.
    """
    invoice_id = parse_invoice_payload(query.invoice_payload)
    if invoice_id is None:
        logger.warning(f"Pre-checkout с чужим payload: {query.invoice_payload!r}")
        await query.answer(ok=False, error_message=Messages.ERROR_NOT_FOUND)
        return

    try:
        await payment_service.handling(invoice_id, provider_id=query.id)
    except NotFoundError:
        await query.answer(ok=False, error_message=Messages.ERROR_NOT_FOUND)
        return
    except BadRequestError as e:
        logger.info(f"Счет #{invoice_id}: платеж отклонен: {e}")
        await query.answer(ok=False, error_message=Messages.ERROR_ORDER_CLOSED)
        return

    await query.answer(ok=True)


@router.message(F.successful_payment)
async def successful_payment(message: Message, payment_service: PaymentService):
    """Платеж прошел: счет → processing"""
    payment = message.successful_payment
    invoice_id = parse_invoice_payload(payment.invoice_payload)
    if invoice_id is None:
        logger.error(f"Оплата с неизвестным payload: {payment.invoice_payload!r}")
        return

    try:
        await payment_service.processing(invoice_id, payment.telegram_payment_charge_id)
    except ShopError as e:
        # Счет доведет до конца сверка с журналом провайдера
        logger.error(f"Счет #{invoice_id}: не удалось принять оплату: {e}")
        return

    log_action(message.from_user.id, "PAYMENT", f"invoice #{invoice_id}")
