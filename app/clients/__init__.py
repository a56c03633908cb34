"""Клиенты внешних сервисов (канал уведомлений, платежный провайдер)"""

from app.clients.base import Notifier, TransactionLedger
from app.clients.telegram import TelegramNotifier, TelegramStarsProvider


__all__ = ["Notifier", "TelegramNotifier", "TelegramStarsProvider", "TransactionLedger"]
