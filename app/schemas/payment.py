"""Pydantic схемы для платежей"""
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from app.utils.helpers import to_naive_utc


class InvoicePayload(BaseModel):
    """Готовые данные для выставления счета в Telegram"""

    invoice_id: int
    order_id: int
    title: str = Field(..., max_length=32)
    description: str = Field(..., max_length=255)
    amount: Decimal = Field(..., ge=0)
    currency: str
    payment_method: str

    @property
    def payload(self) -> str:
        """Строка, которую провайдер вернет в pre_checkout/successful_payment"""
        return str(self.invoice_id)

    @property
    def minor_amount(self) -> int:
        """Сумма в минимальных единицах валюты (для XTR - целые звезды)"""
        if self.currency == "XTR":
            return int(self.amount)
        return int(self.amount * 100)


class ProviderTransaction(BaseModel):
    """Транзакция из журнала платежного провайдера"""

    provider_tx_id: str
    invoice_id: int | None = None
    occurred_at: datetime

    @field_validator("occurred_at")
    @classmethod
    def normalize_occurred_at(cls, v: datetime) -> datetime:
        """Приведение к naive UTC, как в БД"""
        return to_naive_utc(v)


def parse_invoice_payload(payload: str | None) -> int | None:
    """
    Разбор payload счета

    Args:
        payload: Строка payload из Telegram

    Returns:
        ID счета или None, если payload не принадлежит магазину
    """
    if payload and payload.isdigit():
        return int(payload)
    return None
