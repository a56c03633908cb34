"""
Telegram реализации внешних интерфейсов магазина

Оба клиента создаются после Bot и получают его явно:
    bot = Bot(...)
    notifier = TelegramNotifier(bot)
    provider = TelegramStarsProvider(bot)
"""

import logging

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError

from app.core.exceptions import NotificationError, ProviderUnavailableError
from app.schemas.payment import ProviderTransaction, parse_invoice_payload
from app.utils.helpers import escape_html
from app.utils.retry import retry_on_telegram_error


logger = logging.getLogger(__name__)


class TelegramNotifier:
    """Канал уведомлений покупателей через сообщения бота"""

    def __init__(self, bot: Bot, max_attempts: int = 3, base_delay: float = 1.0):
        self.bot = bot
        self.max_attempts = max_attempts
        self.base_delay = base_delay

    async def send(self, recipient: int, title: str, body: str) -> None:
        """
        Отправка уведомления

        Args:
            recipient: chat_id получателя
            title: Заголовок (жирным)
            body: Текст

        Raises:
            NotificationError: Если сообщение не доставлено после всех попыток
        """
        text = f"<b>{escape_html(title)}</b>\n\n{escape_html(body)}"

        @retry_on_telegram_error(
            max_attempts=self.max_attempts, base_delay=self.base_delay, reraise=True
        )
        async def _send():
            return await self.bot.send_message(recipient, text)

        try:
            await _send()
        except TelegramAPIError as e:
            raise NotificationError(recipient, str(e)) from e

        logger.debug(f"Уведомление '{title}' отправлено в чат {recipient}")


class TelegramStarsProvider:
    """Журнал транзакций Telegram Stars"""

    def __init__(self, bot: Bot, max_attempts: int = 3, base_delay: float = 1.0):
        self.bot = bot
        self.max_attempts = max_attempts
        self.base_delay = base_delay

    async def list_transactions(self, offset: int, limit: int) -> list[ProviderTransaction]:
        """
        Страница журнала транзакций

        Args:
            offset: Смещение
            limit: Размер страницы

        Returns:
            Транзакции страницы

        Raises:
            ProviderUnavailableError: Если журнал недоступен
        """

        @retry_on_telegram_error(
            max_attempts=self.max_attempts, base_delay=self.base_delay, reraise=True
        )
        async def _fetch():
            return await self.bot.get_star_transactions(offset=offset, limit=limit)

        try:
            page = await _fetch()
        except TelegramAPIError as e:
            raise ProviderUnavailableError(f"Star transactions unavailable: {e}") from e

        transactions = []
        for tx in page.transactions:
            # Входящий платеж: source - пользователь, payload - ID нашего счета
            payload = getattr(tx.source, "invoice_payload", None)
            transactions.append(
                ProviderTransaction(
                    provider_tx_id=tx.id,
                    invoice_id=parse_invoice_payload(payload),
                    occurred_at=tx.date,
                )
            )

        logger.debug(f"Получено {len(transactions)} транзакций (offset={offset}, limit={limit})")
        return transactions
