"""
Интеграционные тесты оплаты и сверки с журналом провайдера
"""
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from app.core.config import Messages
from app.core.constants import InvoiceState, OrderStatus
from app.core.exceptions import BadRequestError, ProviderUnavailableError
from app.domain.state_machines import IllegalTransitionError
from app.repositories import StaleTransitionError
from app.services import PaymentService
from app.utils.helpers import utc_now


pytestmark = pytest.mark.integration


@pytest_asyncio.fixture
async def invoice(services, buyer, product):
    """Счет на оплату нового заказа"""
    order_id = await services.order_service.create_order(buyer.id, product.id)
    payload = await services.payment_service.create_invoice(order_id, buyer.id)
    return await services.payment_service.get_invoice(payload.invoice_id)


@pytest.fixture
def paged_payments(services, provider):
    """Сервис оплаты с маленькими страницами журнала"""

    def _build(page_size: int = 3, max_pages: int = 10) -> PaymentService:
        return PaymentService(
            services.invoice_repository,
            services.order_service,
            provider,
            page_size=page_size,
            max_pages=max_pages,
        )

    return _build


class TestInvoiceCallbacks:
    async def test_create_invoice(self, services, buyer, product):
        order_id = await services.order_service.create_order(buyer.id, product.id)

        payload = await services.payment_service.create_invoice(order_id, buyer.id)

        assert payload.order_id == order_id
        assert payload.title == product.name
        assert payload.amount == product.price
        assert payload.minor_amount == 100
        assert payload.payload == str(payload.invoice_id)
        invoice = await services.payment_service.get_invoice(payload.invoice_id)
        assert invoice.state == InvoiceState.EXPECT_PAYMENT

    async def test_handling(self, services, invoice):
        """Pre-checkout переводит счет и заказ в handling"""
        await services.payment_service.handling(invoice.id, provider_id="pre-1")

        updated = await services.payment_service.get_invoice(invoice.id)
        assert updated.state == InvoiceState.HANDLING
        assert updated.provider_id == "pre-1"
        assert await services.order_service.get_status(invoice.order_id) == OrderStatus.HANDLING

    async def test_handling_expired_order_cancels_invoice(self, services, invoice, later):
        """Счет по заказу, отмененному по TTL, отклоняется"""
        await services.order_service.cancel_expired_orders(now=later(901))

        with pytest.raises(BadRequestError):
            await services.payment_service.handling(invoice.id, provider_id="pre-1")

        updated = await services.payment_service.get_invoice(invoice.id)
        assert updated.state == InvoiceState.CANCELED

    async def test_handling_writes_invoice_before_order(self, services, invoice, monkeypatch):
        """Если счет не удалось перевести в handling, заказ не трогается"""
        payments = services.payment_service
        monkeypatch.setattr(
            payments.invoice_repo,
            "change_status",
            AsyncMock(
                side_effect=StaleTransitionError("Invoice", invoice.id, InvoiceState.EXPECT_PAYMENT)
            ),
        )

        with pytest.raises(StaleTransitionError):
            await payments.handling(invoice.id, provider_id="pre-1")

        assert await services.order_service.get_status(invoice.order_id) == (
            OrderStatus.EXPECT_PAYMENTS
        )

    async def test_successful_payment_is_settled(self, services, invoice, buyer, notifier):
        payments = services.payment_service
        await payments.handling(invoice.id, provider_id="pre-1")
        await payments.processing(invoice.id, provider_id="charge-1")
        await payments.processing(invoice.id, provider_id="charge-1")

        assert await payments.reconcile_processing_invoices() == 1

        assert (await payments.get_invoice(invoice.id)).state == InvoiceState.PERFORMED
        assert await services.order_service.get_status(invoice.order_id) == OrderStatus.PROCESSING
        assert [m.body for m in notifier.sent] == [Messages.ORDER_PAID]
        assert notifier.sent[0].recipient == buyer.chat_id

    async def test_payment_for_cancelled_order(self, services, invoice):
        """Деньги пришли по отмененному заказу: счет закрывается отменой"""
        payments = services.payment_service
        await payments.handling(invoice.id, provider_id="pre-1")
        await services.order_service.canceled(invoice.order_id)

        with pytest.raises(IllegalTransitionError):
            await payments.processing(invoice.id, provider_id="charge-1")
        assert (await payments.get_invoice(invoice.id)).state == InvoiceState.PROCESSING

        assert await payments.reconcile_processing_invoices() == 0
        assert (await payments.get_invoice(invoice.id)).state == InvoiceState.CANCELED

    async def test_broken_invoice_does_not_block_queue(
        self, services, buyer, product, invoice, provider
    ):
        """Счет, который нельзя провести, уходит в конец очереди"""
        payments = PaymentService(
            services.invoice_repository, services.order_service, provider, batch_size=1
        )
        item_id = await services.inventory_service.pre_reserve(product.id)
        formed = await services.order_repository.create(
            user_id=buyer.id,
            item_id=item_id,
            total_price=product.price,
            currency=product.currency,
            ttl=utc_now(),
        )
        broken = await services.invoice_repository.create(
            order_id=formed.id, amount=product.price, currency=product.currency
        )
        await services.invoice_repository.move_to(broken.id, InvoiceState.HANDLING)
        await services.invoice_repository.move_to(broken.id, InvoiceState.PROCESSING)
        await payments.handling(invoice.id, provider_id="pre-1")
        await payments.processing(invoice.id, provider_id="charge-1")

        assert await payments.reconcile_processing_invoices() == 0
        assert await payments.reconcile_processing_invoices() == 1

        assert (await payments.get_invoice(invoice.id)).state == InvoiceState.PERFORMED
        assert (await payments.get_invoice(broken.id)).state == InvoiceState.PROCESSING
        assert await services.order_service.get_status(formed.id) == OrderStatus.FORM


class TestStuckInvoices:
    async def test_fresh_handling_invoice_not_checked(self, services, invoice, provider):
        await services.payment_service.handling(invoice.id, provider_id="pre-1")

        assert await services.payment_service.reconcile_stuck_invoices() == 0
        assert provider.calls == []

    async def test_found_in_ledger(self, services, invoice, provider, later):
        payments = services.payment_service
        await payments.handling(invoice.id, provider_id="pre-1")
        provider.add("charge-1", invoice.id, later(5))

        assert await payments.reconcile_stuck_invoices(now=later(120)) == 1

        updated = await payments.get_invoice(invoice.id)
        assert updated.state == InvoiceState.PROCESSING
        assert updated.provider_id == "charge-1"
        assert await services.order_service.get_status(invoice.order_id) == OrderStatus.HANDLING

    async def test_not_found_cancels(self, services, invoice, product, provider, later, notifier):
        payments = services.payment_service
        await payments.handling(invoice.id, provider_id="pre-1")
        provider.add("charge-other", None, later(5))

        assert await payments.reconcile_stuck_invoices(now=later(120)) == 1

        assert (await payments.get_invoice(invoice.id)).state == InvoiceState.CANCELED
        assert await services.order_service.get_status(invoice.order_id) == OrderStatus.CANCELLED
        assert await services.inventory_service.count_available(product.id) == 3
        assert [m.body for m in notifier.sent] == [Messages.ORDER_CANCELLED]

    async def test_unordered_page_is_read_to_the_end(
        self, services, invoice, provider, paged_payments, later
    ):
        """Старая транзакция в начале страницы не обрывает чтение этой страницы"""
        await services.payment_service.handling(invoice.id, provider_id="pre-1")
        for n in range(3):
            provider.add(f"newer-{n}", None, later(50 - n))
        provider.add("ancient", None, invoice.created_at - timedelta(hours=1))
        provider.add("charge-1", invoice.id, later(5))
        provider.add("newest", None, later(60))
        provider.add("beyond", invoice.id + 1000, invoice.created_at - timedelta(hours=2))

        payments = paged_payments(page_size=3)
        assert await payments.reconcile_stuck_invoices(now=later(120)) == 1

        assert provider.calls == [(0, 3), (3, 3)]
        updated = await payments.get_invoice(invoice.id)
        assert updated.state == InvoiceState.PROCESSING
        assert updated.provider_id == "charge-1"

    async def test_short_page_stops_scan(self, services, invoice, provider, paged_payments, later):
        await services.payment_service.handling(invoice.id, provider_id="pre-1")
        provider.add("charge-1", invoice.id, later(5))
        provider.add("charge-other", None, later(6))

        payments = paged_payments(page_size=3)
        assert await payments.reconcile_stuck_invoices(now=later(120)) == 1

        assert provider.calls == [(0, 3)]

    async def test_page_cap_leaves_invoice_for_next_run(
        self, services, invoice, provider, paged_payments, later
    ):
        """Журнал не дочитан до границы: счет не отменяется"""
        await services.payment_service.handling(invoice.id, provider_id="pre-1")
        for n in range(5):
            provider.add(f"newer-{n}", None, later(50 - n))

        payments = paged_payments(page_size=1, max_pages=2)
        assert await payments.reconcile_stuck_invoices(now=later(120)) == 0

        assert provider.calls == [(0, 1), (1, 1)]
        assert (await payments.get_invoice(invoice.id)).state == InvoiceState.HANDLING
        assert await services.order_service.get_status(invoice.order_id) == OrderStatus.HANDLING

    async def test_provider_unavailable_aborts_run(self, services, invoice, provider, later):
        payments = services.payment_service
        await payments.handling(invoice.id, provider_id="pre-1")
        provider.unavailable = True

        with pytest.raises(ProviderUnavailableError):
            await payments.reconcile_stuck_invoices(now=later(120))

        assert (await payments.get_invoice(invoice.id)).state == InvoiceState.HANDLING
