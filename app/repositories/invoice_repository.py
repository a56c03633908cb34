"""
Репозиторий счетов на оплату
"""

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select

from app.core.constants import InvoiceState, PaymentMethod
from app.database.orm_models import Invoice
from app.domain.state_machines import InvoiceStateMachine
from app.repositories.base import BaseRepository
from app.utils.helpers import utc_now


logger = logging.getLogger(__name__)


class InvoiceRepository(BaseRepository[Invoice]):
    """Репозиторий для работы со счетами"""

    model = Invoice
    status_field = "state"
    state_machine = InvoiceStateMachine

    async def create(
        self,
        order_id: int,
        amount: Decimal,
        currency: str,
        payment_method: str = PaymentMethod.TELEGRAM,
    ) -> Invoice:
        """
        Создание счета в состоянии expect_payment

        Args:
            order_id: ID заказа
            amount: Сумма
            currency: Валюта
            payment_method: Способ оплаты

        Returns:
            Объект Invoice
        """
        now = utc_now()
        async with self.transaction() as session:
            invoice = Invoice(
                order_id=order_id,
                state=InvoiceState.EXPECT_PAYMENT,
                amount=amount,
                currency=currency,
                payment_method=payment_method,
                created_at=now,
                updated_at=now,
            )
            session.add(invoice)
            await session.flush()

        logger.info(f"Создан счет #{invoice.id} для заказа #{order_id}")
        return invoice

    async def find_by_state(self, state: str, limit: int) -> list[Invoice]:
        """Счета в состоянии, давно не менявшиеся - первыми"""
        async with self.transaction() as session:
            stmt = (
                select(Invoice)
                .where(Invoice.state == state)
                .order_by(Invoice.updated_at, Invoice.id)
                .limit(limit)
            )
            return list((await session.execute(stmt)).scalars().all())

    async def find_stuck(self, state: str, updated_before: datetime, limit: int) -> list[Invoice]:
        """
        Зависшие счета

        Args:
            state: Состояние (обычно handling)
            updated_before: Граница updated_at (now - таймаут)
            limit: Максимум записей

        Returns:
            Список счетов, недавно обновленные первыми
        """
        async with self.transaction() as session:
            stmt = (
                select(Invoice)
                .where(Invoice.state == state, Invoice.updated_at < updated_before)
                .order_by(Invoice.updated_at.desc())
                .limit(limit)
            )
            return list((await session.execute(stmt)).scalars().all())
