"""
State Machines для валидации переходов статусов

Каждый тип статуса (товар, заказ, счет, подписка) владеет собственной
неизменяемой таблицей переходов. Переход в тот же статус не является
ошибкой бизнес-логики, но сигнализируется EqualStateError, чтобы
вызывающий код мог трактовать его как no-op.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import ClassVar

from app.core.constants import InvoiceState, ItemStatus, OrderStatus, SubscriptionState
from app.core.exceptions import BadRequestError


class EqualStateError(BadRequestError):
    """Запрошен переход в текущий статус (no-op)"""

    def __init__(self, entity_type: str, state: str):
        self.entity_type = entity_type
        self.state = state
        super().__init__(f"{entity_type} is already in state '{state}'")


class IllegalTransitionError(BadRequestError):
    """Исключение при попытке недопустимого перехода статуса"""

    def __init__(self, entity_type: str, from_state: str, to_state: str, reason: str = ""):
        self.entity_type = entity_type
        self.from_state = from_state
        self.to_state = to_state
        self.reason = reason
        message = f"{entity_type}: недопустимый переход из '{from_state}' в '{to_state}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)


@dataclass(frozen=True)
class StatusTransition:
    """Разрешенный переход статуса"""

    from_status: str
    to_status: str


def _freeze(table: dict[str, set[str]]) -> Mapping[str, frozenset[str]]:
    return MappingProxyType({state: frozenset(targets) for state, targets in table.items()})


class StatusMachine:
    """
    Базовый класс State Machine

    Наследники задают ENTITY (имя сущности для сообщений об ошибках),
    STATUSES (класс констант) и TRANSITIONS (таблица допустимых переходов).
    """

    ENTITY: ClassVar[str] = "Entity"
    STATUSES: ClassVar[type] = object
    TRANSITIONS: ClassVar[Mapping[str, frozenset[str]]] = MappingProxyType({})

    @classmethod
    def can_transition(cls, from_state: str, to_state: str) -> bool:
        """
        Проверка возможности перехода между статусами

        Args:
            from_state: Текущий статус
            to_state: Целевой статус

        Returns:
            True если переход допустим (переход в тот же статус допустим всегда)
        """
        if from_state == to_state:
            return True

        return to_state in cls.TRANSITIONS.get(from_state, frozenset())

    @classmethod
    def request_transition(cls, from_state: str, to_state: str) -> StatusTransition:
        """
        Запрос перехода статуса

        Args:
            from_state: Текущий статус
            to_state: Целевой статус

        Returns:
            StatusTransition с описанием перехода

        Raises:
            EqualStateError: Если статусы совпадают
            IllegalTransitionError: Если перехода нет в таблице
        """
        if from_state == to_state:
            raise EqualStateError(cls.ENTITY, from_state)

        if to_state not in cls.TRANSITIONS.get(from_state, frozenset()):
            allowed = cls.get_available_transitions(from_state)
            if allowed:
                reason = f"допустимые переходы: {', '.join(allowed)}"
            else:
                reason = f"статус '{from_state}' является терминальным"
            raise IllegalTransitionError(cls.ENTITY, from_state, to_state, reason)

        return StatusTransition(from_status=from_state, to_status=to_state)

    @classmethod
    def validate_transition(cls, from_state: str, to_state: str) -> None:
        """Проверка перехода без получения дескриптора (те же исключения)"""
        cls.request_transition(from_state, to_state)

    @classmethod
    def get_available_transitions(cls, from_state: str) -> list[str]:
        """
        Получение списка доступных переходов из текущего статуса

        Args:
            from_state: Текущий статус

        Returns:
            Отсортированный список статусов для перехода
        """
        return sorted(cls.TRANSITIONS.get(from_state, frozenset()))

    @classmethod
    def is_terminal_state(cls, state: str) -> bool:
        """
        Проверка, является ли статус терминальным

        Args:
            state: Статус для проверки

        Returns:
            True если из этого статуса нельзя никуда перейти
        """
        return not cls.TRANSITIONS.get(state)

    @classmethod
    def get_transition_description(cls, from_state: str, to_state: str) -> str:
        """Описание перехода на русском"""
        get_name = getattr(cls.STATUSES, "get_status_name", str)
        return f"{cls.ENTITY}: {get_name(from_state)} → {get_name(to_state)}"


class ItemStateMachine(StatusMachine):
    """
    Жизненный цикл единицы товара

    SALE → PRE_RESERVED → RESERVED → PERFORMED → REALIZED
             ↓               ↓
            SALE            SALE
    """

    ENTITY = "Item"
    STATUSES = ItemStatus
    TRANSITIONS = _freeze(
        {
            ItemStatus.SALE: {ItemStatus.PRE_RESERVED},
            ItemStatus.PRE_RESERVED: {ItemStatus.RESERVED, ItemStatus.SALE},
            ItemStatus.RESERVED: {ItemStatus.PERFORMED, ItemStatus.SALE},
            ItemStatus.PERFORMED: {ItemStatus.REALIZED},
            ItemStatus.REALIZED: set(),
        }
    )


class OrderStateMachine(StatusMachine):
    """
    Жизненный цикл заказа

    FORM → EXPECT_PAYMENTS → HANDLING → PROCESSING → PERFORMED
      ↓          ↓              ↓
    CANCELLED  CANCELLED     CANCELLED
    """

    ENTITY = "Order"
    STATUSES = OrderStatus
    TRANSITIONS = _freeze(
        {
            OrderStatus.FORM: {OrderStatus.EXPECT_PAYMENTS, OrderStatus.CANCELLED},
            OrderStatus.EXPECT_PAYMENTS: {OrderStatus.HANDLING, OrderStatus.CANCELLED},
            OrderStatus.HANDLING: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
            OrderStatus.PROCESSING: {OrderStatus.PERFORMED},
            OrderStatus.PERFORMED: set(),
            OrderStatus.CANCELLED: set(),
        }
    )


class InvoiceStateMachine(StatusMachine):
    """
    Жизненный цикл счета на оплату

    EXPECT_PAYMENT → HANDLING → PROCESSING → PERFORMED → REFUNDED
          ↓             ↓           ↓
       CANCELED      CANCELED    CANCELED
    """

    ENTITY = "Invoice"
    STATUSES = InvoiceState
    TRANSITIONS = _freeze(
        {
            InvoiceState.EXPECT_PAYMENT: {InvoiceState.HANDLING, InvoiceState.CANCELED},
            InvoiceState.HANDLING: {InvoiceState.PROCESSING, InvoiceState.CANCELED},
            InvoiceState.PROCESSING: {InvoiceState.PERFORMED, InvoiceState.CANCELED},
            InvoiceState.PERFORMED: {InvoiceState.REFUNDED},
            InvoiceState.CANCELED: set(),
            InvoiceState.REFUNDED: set(),
        }
    )


class SubscriptionStateMachine(StatusMachine):
    """Жизненный цикл подписки: ACTIVE → INACTIVE"""

    ENTITY = "Subscription"
    STATUSES = SubscriptionState
    TRANSITIONS = _freeze(
        {
            SubscriptionState.ACTIVE: {SubscriptionState.INACTIVE},
            SubscriptionState.INACTIVE: set(),
        }
    )
