"""Тесты для Pydantic схем валидации"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from app.core.constants import OrderStatus
from app.schemas import InvoicePayload, OrderFilters, ProviderTransaction, parse_invoice_payload


class TestOrderFilters:
    """Тесты фильтров списка заказов"""

    def test_defaults(self):
        filters = OrderFilters()
        assert filters.statuses == []
        assert filters.limit == 20
        assert filters.offset == 0

    def test_valid_statuses(self):
        filters = OrderFilters(statuses=[OrderStatus.PERFORMED, OrderStatus.CANCELLED])
        assert filters.statuses == ["performed", "cancelled"]

    def test_invalid_status(self):
        """Тест невалидного статуса"""
        with pytest.raises(ValidationError) as exc_info:
            OrderFilters(statuses=["new"])

        assert "Недопустимые статусы" in str(exc_info.value)

    def test_inverted_ttl_window(self):
        now = datetime(2025, 1, 1, 12, 0)
        with pytest.raises(ValidationError) as exc_info:
            OrderFilters(ttl_from=now, ttl_to=now - timedelta(minutes=1))

        assert "ttl_from" in str(exc_info.value)

    @pytest.mark.parametrize("limit", [0, 101])
    def test_limit_bounds(self, limit):
        with pytest.raises(ValidationError):
            OrderFilters(limit=limit)


class TestInvoicePayload:
    """Тесты данных счета"""

    def _payload(self, **overrides) -> InvoicePayload:
        data = {
            "invoice_id": 7,
            "order_id": 3,
            "title": "VPN 30 дней",
            "description": "Доступ к VPN на месяц",
            "amount": Decimal("100"),
            "currency": "XTR",
            "payment_method": "telegram",
        }
        data.update(overrides)
        return InvoicePayload(**data)

    def test_payload_is_invoice_id(self):
        assert self._payload().payload == "7"

    def test_minor_amount_stars(self):
        """Для Telegram Stars сумма передается целыми звездами"""
        assert self._payload().minor_amount == 100

    def test_minor_amount_rub(self):
        assert self._payload(amount=Decimal("150.50"), currency="RUB").minor_amount == 15050

    def test_title_limit(self):
        with pytest.raises(ValidationError):
            self._payload(title="x" * 33)


class TestProviderTransaction:
    def test_occurred_at_normalized_to_naive_utc(self):
        tx = ProviderTransaction(
            provider_tx_id="tx-1",
            invoice_id=5,
            occurred_at=datetime(2025, 1, 1, 15, 0, tzinfo=timezone(timedelta(hours=3))),
        )
        assert tx.occurred_at == datetime(2025, 1, 1, 12, 0)
        assert tx.occurred_at.tzinfo is None


@pytest.mark.parametrize(
    ("payload", "expected"),
    [("42", 42), ("", None), (None, None), ("order-42", None), ("-1", None)],
)
def test_parse_invoice_payload(payload, expected):
    assert parse_invoice_payload(payload) == expected
