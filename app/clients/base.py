"""Контракты внешних сервисов, от которых зависит бизнес-логика"""

from typing import Protocol

from app.schemas.payment import ProviderTransaction


class Notifier(Protocol):
    """Канал уведомлений"""

    async def send(self, recipient: int, title: str, body: str) -> None: ...


class TransactionLedger(Protocol):
    """Журнал транзакций платежного провайдера (новые первыми)"""

    async def list_transactions(self, offset: int, limit: int) -> list[ProviderTransaction]: ...
