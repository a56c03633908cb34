"""
Pytest fixtures и конфигурация для тестов
"""
from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from pathlib import Path

import pytest
import pytest_asyncio

from app.core.constants import Currency
from app.core.exceptions import NotificationError, ProviderUnavailableError
from app.database import ORMDatabase, Product, User
from app.schemas.payment import ProviderTransaction
from app.services import ServiceFactory
from app.utils.helpers import utc_now


@dataclass
class SentMessage:
    recipient: int
    title: str
    body: str


@dataclass
class FakeNotifier:
    """Канал уведомлений, который запоминает отправленное"""

    sent: list[SentMessage] = field(default_factory=list)
    fail: bool = False

    async def send(self, recipient: int, title: str, body: str) -> None:
        if self.fail:
            raise NotificationError(recipient, "chat unavailable")
        self.sent.append(SentMessage(recipient, title, body))


@dataclass
class FakeProvider:
    """
    Журнал транзакций провайдера

    transactions хранится в порядке выдачи (новые первыми по страницам),
    list_transactions отдает срезы по offset/limit.
    """

    transactions: list[ProviderTransaction] = field(default_factory=list)
    unavailable: bool = False
    calls: list[tuple[int, int]] = field(default_factory=list)

    async def list_transactions(self, offset: int, limit: int) -> list[ProviderTransaction]:
        self.calls.append((offset, limit))
        if self.unavailable:
            raise ProviderUnavailableError("ledger is down")
        return self.transactions[offset : offset + limit]

    def add(self, provider_tx_id: str, invoice_id: int | None, occurred_at: datetime):
        self.transactions.append(
            ProviderTransaction(
                provider_tx_id=provider_tx_id, invoice_id=invoice_id, occurred_at=occurred_at
            )
        )


@pytest_asyncio.fixture
async def db(tmp_path: Path) -> AsyncGenerator[ORMDatabase, None]:
    """
    Фикстура для тестовой базы данных

    Файловая SQLite: in-memory база не разделяется между соединениями пула,
    а конкурентным тестам нужны независимые соединения.
    """
    database = ORMDatabase(f"sqlite+aiosqlite:///{tmp_path / 'shop_test.db'}")
    await database.connect()
    await database.init_db()
    yield database
    await database.disconnect()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def services(db: ORMDatabase, notifier: FakeNotifier, provider: FakeProvider) -> ServiceFactory:
    """Фабрика сервисов поверх тестовой БД и фейковых каналов связи"""
    return ServiceFactory(db, notifier=notifier, provider=provider)


@pytest_asyncio.fixture
async def buyer(services: ServiceFactory) -> User:
    """Зарегистрированный покупатель"""
    return await services.user_service.register_telegram_user(
        telegram_id=123456789, chat_id=123456789, username="buyer"
    )


@pytest_asyncio.fixture
async def product(services: ServiceFactory) -> Product:
    """Товар с тремя единицами на складе"""
    inventory = services.inventory_service
    product = await inventory.create_product(
        name="VPN 30 дней",
        description="Доступ к VPN на месяц",
        price=Decimal("100"),
        currency=Currency.XTR,
        subscription_period=int(timedelta(days=30).total_seconds()),
    )
    await inventory.add_items(product.id, ["key-1", "key-2", "key-3"])
    return product


@pytest.fixture
def later():
    """Момент времени в будущем относительно текущего"""

    def _later(seconds: int) -> datetime:
        return utc_now() + timedelta(seconds=seconds)

    return _later
