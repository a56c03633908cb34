"""
Сервис платежей: счета, колбэки провайдера и сверка с журналом транзакций
"""

import logging
from datetime import datetime, timedelta

from app.clients.base import TransactionLedger
from app.core.config import Config
from app.core.constants import InvoiceState, OrderStatus, PaymentMethod
from app.core.exceptions import BadRequestError, ShopError
from app.database.orm_models import Invoice
from app.domain.state_machines import EqualStateError, IllegalTransitionError, InvoiceStateMachine
from app.repositories import InvoiceRepository, StaleTransitionError
from app.schemas.payment import InvoicePayload, ProviderTransaction
from app.services.order_service import OrderService
from app.utils.helpers import truncate_text, utc_now


logger = logging.getLogger(__name__)


class PaymentService:
    """
    Сервис для управления оплатой заказов

    Колбэки провайдера (pre_checkout, successful_payment) - быстрый путь.
    Источником истины остаются фоновые задачи сверки: они доводят счета
    до конечного состояния, даже если колбэк не был получен.
    """

    def __init__(
        self,
        invoice_repo: InvoiceRepository,
        order_service: OrderService,
        provider: TransactionLedger,
        handling_timeout: int | None = None,
        batch_size: int | None = None,
        page_size: int | None = None,
        max_pages: int | None = None,
    ):
        """
        Инициализация сервиса

        Args:
            invoice_repo: Репозиторий счетов
            order_service: Сервис заказов
            provider: Журнал транзакций провайдера
            handling_timeout: Через сколько секунд счет в handling считается зависшим
            batch_size: Размер пачки для фоновых задач
            page_size: Размер страницы журнала
            max_pages: Предел страниц журнала за один запуск
        """
        self.invoice_repo = invoice_repo
        self.order_service = order_service
        self.provider = provider
        self.handling_timeout = timedelta(seconds=handling_timeout or Config.HANDLING_TIMEOUT)
        self.batch_size = batch_size or Config.INVOICE_BATCH_SIZE
        self.page_size = page_size or Config.PROVIDER_PAGE_SIZE
        self.max_pages = max_pages or Config.PROVIDER_MAX_PAGES

    # ==================== PUBLIC API ====================

    async def create_invoice(
        self, order_id: int, user_id: int, method: str = PaymentMethod.TELEGRAM
    ) -> InvoicePayload:
        """
        Выставление счета на оплату заказа

        Args:
            order_id: ID заказа
            user_id: ID покупателя (проверка владения)
            method: Способ оплаты

        Returns:
            Данные для отправки счета пользователю

        Raises:
            ForbiddenError: Если заказ чужой
            EntityNotFoundError: Если заказа нет
        """
        order = await self.order_service.get_order(order_id, user_id)
        invoice = await self.invoice_repo.create(
            order_id=order.id,
            amount=order.total_price,
            currency=order.currency,
            payment_method=method,
        )

        title = order.product.title if order.product else f"Заказ № {order.id}"
        description = order.product.description if order.product else ""
        return InvoicePayload(
            invoice_id=invoice.id,
            order_id=order.id,
            title=truncate_text(title, 32),
            description=truncate_text(description or title, 255),
            amount=invoice.amount,
            currency=invoice.currency,
            payment_method=invoice.payment_method,
        )

    async def get_invoice(self, invoice_id: int) -> Invoice:
        """Счет (EntityNotFoundError если нет)"""
        return await self.invoice_repo.get_by_id(invoice_id)

    async def handling(self, invoice_id: int, provider_id: str) -> None:
        """
        Pre-checkout: expect_payment → handling, заказ → handling

        Сначала фиксируется счет, затем заказ: счет в handling без заказа
        в handling доведет задача сверки, обратный случай не отслеживается.
        Если заказ уже нельзя оплатить (отменен по TTL), счет отменяется,
        а ошибка пробрасывается, чтобы провайдер отклонил платеж.

        Raises:
            BadRequestError: Если заказ или счет нельзя оплатить
        """
        invoice = await self.invoice_repo.get_by_id(invoice_id)
        if invoice.state != InvoiceState.HANDLING:
            await self.invoice_repo.change_status(
                invoice_id,
                InvoiceStateMachine.request_transition(invoice.state, InvoiceState.HANDLING),
                provider_id=provider_id,
            )
            logger.info(f"Счет #{invoice_id}: оплата начата (provider_id={provider_id})")

        try:
            await self.order_service.payment_handling(invoice.order_id)
        except BadRequestError as e:
            logger.warning(f"Счет #{invoice_id}: заказ #{invoice.order_id} нельзя оплатить: {e}")
            await self._cancel_invoice(invoice_id)
            raise

    async def processing(self, invoice_id: int, provider_id: str) -> None:
        """
        Successful payment: → processing, заказ → handling (если еще нет)
        """
        invoice = await self.invoice_repo.get_by_id(invoice_id)

        try:
            await self.invoice_repo.move_to(
                invoice_id, InvoiceState.PROCESSING, provider_id=provider_id
            )
            logger.info(f"Счет #{invoice_id} оплачен (provider_id={provider_id})")
        except EqualStateError:
            # Повторный колбэк: заказ уже мог уйти дальше handling
            logger.debug(f"Счет #{invoice_id} уже оплачен")
            return

        await self.order_service.payment_handling(invoice.order_id)

    # ==================== BACKGROUND ====================

    async def reconcile_processing_invoices(self) -> int:
        """
        Фоновая задача: проведение оплаченных счетов

        processing → performed, заказ → processing.

        Returns:
            Количество проведенных счетов
        """
        performed = 0
        for invoice in await self.invoice_repo.find_by_state(
            InvoiceState.PROCESSING, self.batch_size
        ):
            try:
                order_status = await self.order_service.get_status(invoice.order_id)
                if order_status == OrderStatus.CANCELLED:
                    # Деньги получены по отмененному заказу: возврат вне автоматики
                    logger.error(
                        f"Счет #{invoice.id} оплачен, но заказ #{invoice.order_id} отменен. "
                        "Требуется ручной возврат"
                    )
                    await self.invoice_repo.move_to(invoice.id, InvoiceState.CANCELED)
                    continue

                if order_status == OrderStatus.EXPECT_PAYMENTS:
                    await self.order_service.payment_handling(invoice.order_id)
                if order_status != OrderStatus.PERFORMED:
                    await self.order_service.processing(invoice.order_id)
                await self.invoice_repo.move_to(invoice.id, InvoiceState.PERFORMED)
            except (EqualStateError, StaleTransitionError):
                logger.debug(f"Счет #{invoice.id} уже проведен")
                continue
            except ShopError as e:
                logger.error(f"Счет #{invoice.id}: ошибка проведения: {e}")
                await self.invoice_repo.touch(invoice.id)
                continue

            performed += 1
            logger.info(f"Счет #{invoice.id} проведен, заказ #{invoice.order_id} оплачен")

        return performed

    async def reconcile_stuck_invoices(self, now: datetime | None = None) -> int:
        """
        Фоновая задача: сверка зависших счетов с журналом провайдера

        Счет в handling дольше таймаута ищется в журнале транзакций. Если
        транзакция с ID провайдера найдена - счет оплачен, иначе счет и
        заказ отменяются. Если журнал не удалось дочитать до границы за
        max_pages страниц, ненайденные счета остаются до следующего запуска.

        Returns:
            Количество обработанных счетов

        Raises:
            ProviderUnavailableError: Если журнал недоступен (запуск прерывается)
        """
        now = now or utc_now()
        candidates = await self.invoice_repo.find_stuck(
            InvoiceState.HANDLING, now - self.handling_timeout, self.batch_size
        )
        if not candidates:
            return 0

        oldest = min(invoice.created_at for invoice in candidates)
        transactions, complete = await self._collect_transactions(since=oldest)

        resolved = 0
        for invoice in candidates:
            transaction = transactions.get(invoice.id)
            try:
                if transaction is not None and transaction.provider_tx_id:
                    await self._force_processing(invoice, transaction)
                elif complete:
                    await self._cancel_unpaid(invoice)
                else:
                    # Журнал прочитан не до конца: отсутствие оплаты не доказано
                    logger.warning(f"Счет #{invoice.id}: оплата не найдена, сверка отложена")
                    continue
            except (EqualStateError, StaleTransitionError):
                logger.debug(f"Счет #{invoice.id} изменен другим процессом")
                continue
            except ShopError as e:
                logger.error(f"Счет #{invoice.id}: ошибка сверки: {e}")
                await self.invoice_repo.touch(invoice.id)
                continue
            resolved += 1

        return resolved

    # ==================== HELPERS ====================

    async def _collect_transactions(
        self, since: datetime
    ) -> tuple[dict[int, ProviderTransaction], bool]:
        """
        Чтение журнала провайдера до момента since

        Журнал отдается новыми транзакциями первыми, но порядок внутри
        страницы не гарантирован: останавливаемся только когда самая
        старая транзакция страницы не позже since.

        Returns:
            Транзакции по ID счета и признак того, что журнал прочитан
            до границы since (False если сработал предел страниц)
        """
        found: dict[int, ProviderTransaction] = {}
        offset = 0
        complete = False

        for page_number in range(1, self.max_pages + 1):
            page = await self.provider.list_transactions(offset=offset, limit=self.page_size)
            for transaction in page:
                if transaction.invoice_id is not None:
                    found.setdefault(transaction.invoice_id, transaction)

            if len(page) < self.page_size or min(tx.occurred_at for tx in page) <= since:
                complete = True
                break
            offset += len(page)
        else:
            logger.warning(
                f"Журнал провайдера: достигнут предел {self.max_pages} страниц, "
                f"граница {since.isoformat()} не пройдена"
            )

        logger.debug(f"Журнал провайдера: {len(found)} транзакций за {page_number} стр.")
        return found, complete

    async def _force_processing(self, invoice: Invoice, transaction: ProviderTransaction) -> None:
        await self.invoice_repo.move_to(
            invoice.id, InvoiceState.PROCESSING, provider_id=transaction.provider_tx_id
        )
        await self.order_service.payment_handling(invoice.order_id)
        logger.info(
            f"Счет #{invoice.id}: оплата найдена в журнале ({transaction.provider_tx_id})"
        )

    async def _cancel_unpaid(self, invoice: Invoice) -> None:
        try:
            await self.order_service.canceled(invoice.order_id)
        except IllegalTransitionError as e:
            # Заказ оплачен другим счетом
            logger.warning(f"Счет #{invoice.id}: заказ #{invoice.order_id} не отменен: {e}")
        await self.invoice_repo.move_to(invoice.id, InvoiceState.CANCELED)
        logger.info(f"Счет #{invoice.id} и заказ #{invoice.order_id} отменены: оплата не найдена")

    async def _cancel_invoice(self, invoice_id: int) -> None:
        try:
            await self.invoice_repo.move_to(invoice_id, InvoiceState.CANCELED)
        except (EqualStateError, StaleTransitionError):
            return
        logger.info(f"Счет #{invoice_id} отменен")
