"""
Общие обработчики: старт и витрина
"""

import logging

from aiogram import F, Router
from aiogram.filters import Command, CommandStart
from aiogram.types import Message

from app.core.config import Messages
from app.keyboards.inline import get_catalog_keyboard
from app.keyboards.reply import CATALOG_BUTTON, get_main_menu_keyboard
from app.services import InventoryService, UserService


logger = logging.getLogger(__name__)

router = Router(name="common")


@router.message(CommandStart())
async def cmd_start(message: Message, user_service: UserService, inventory: InventoryService):
    """
    Обработчик команды /start

    Регистрирует покупателя и показывает витрину.
    """
    user = await user_service.register_telegram_user(
        telegram_id=message.from_user.id,
        chat_id=message.chat.id,
        username=message.from_user.username,
    )
    logger.info(f"User {message.from_user.id} started the bot (user #{user.id})")

    await message.answer(Messages.WELCOME, reply_markup=get_main_menu_keyboard())
    await send_catalog(message, inventory)


@router.message(Command("catalog"))
@router.message(F.text == CATALOG_BUTTON)
async def cmd_catalog(message: Message, inventory: InventoryService):
    """Витрина товаров"""
    await send_catalog(message, inventory)


async def send_catalog(message: Message, inventory: InventoryService):
    products = await inventory.list_products()
    if not products:
        await message.answer(Messages.CATALOG_EMPTY)
        return

    await message.answer("🛒 <b>Каталог</b>", reply_markup=get_catalog_keyboard(products))
