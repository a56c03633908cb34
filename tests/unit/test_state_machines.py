"""
Тесты таблиц переходов статусов
"""

import itertools

import pytest

from app.core.constants import InvoiceState, ItemStatus, OrderStatus, SubscriptionState
from app.core.exceptions import BadRequestError
from app.domain.state_machines import (
    EqualStateError,
    IllegalTransitionError,
    InvoiceStateMachine,
    ItemStateMachine,
    OrderStateMachine,
    StatusTransition,
    SubscriptionStateMachine,
)


class TestOrderStateMachine:
    """Тесты жизненного цикла заказа"""

    @pytest.mark.parametrize(
        ("from_state", "to_state"),
        [
            (OrderStatus.FORM, OrderStatus.EXPECT_PAYMENTS),
            (OrderStatus.FORM, OrderStatus.CANCELLED),
            (OrderStatus.EXPECT_PAYMENTS, OrderStatus.HANDLING),
            (OrderStatus.EXPECT_PAYMENTS, OrderStatus.CANCELLED),
            (OrderStatus.HANDLING, OrderStatus.PROCESSING),
            (OrderStatus.HANDLING, OrderStatus.CANCELLED),
            (OrderStatus.PROCESSING, OrderStatus.PERFORMED),
        ],
    )
    def test_allowed_transitions(self, from_state, to_state):
        """Разрешенные переходы возвращают дескриптор"""
        transition = OrderStateMachine.request_transition(from_state, to_state)
        assert transition == StatusTransition(from_status=from_state, to_status=to_state)

    def test_paid_order_cannot_be_cancelled(self):
        """Оплаченный заказ нельзя отменить"""
        with pytest.raises(IllegalTransitionError) as exc_info:
            OrderStateMachine.request_transition(OrderStatus.PROCESSING, OrderStatus.CANCELLED)

        assert exc_info.value.from_state == OrderStatus.PROCESSING
        assert exc_info.value.to_state == OrderStatus.CANCELLED
        assert "performed" in str(exc_info.value)

    def test_cannot_skip_payment(self):
        """Нельзя перескочить через оплату"""
        assert not OrderStateMachine.can_transition(OrderStatus.FORM, OrderStatus.PROCESSING)
        with pytest.raises(IllegalTransitionError):
            OrderStateMachine.request_transition(OrderStatus.EXPECT_PAYMENTS, OrderStatus.PERFORMED)

    def test_equal_state(self):
        """Переход в тот же статус - отдельная ошибка"""
        with pytest.raises(EqualStateError):
            OrderStateMachine.request_transition(OrderStatus.HANDLING, OrderStatus.HANDLING)
        assert OrderStateMachine.can_transition(OrderStatus.HANDLING, OrderStatus.HANDLING)

    @pytest.mark.parametrize("state", [OrderStatus.PERFORMED, OrderStatus.CANCELLED])
    def test_terminal_states(self, state):
        """Из терминальных статусов переходов нет"""
        assert OrderStateMachine.is_terminal_state(state)
        assert OrderStateMachine.get_available_transitions(state) == []
        with pytest.raises(IllegalTransitionError) as exc_info:
            OrderStateMachine.request_transition(state, OrderStatus.FORM)
        assert "терминальным" in str(exc_info.value)

    def test_available_transitions_sorted(self):
        assert OrderStateMachine.get_available_transitions(OrderStatus.FORM) == [
            OrderStatus.CANCELLED,
            OrderStatus.EXPECT_PAYMENTS,
        ]

    def test_transition_description(self):
        description = OrderStateMachine.get_transition_description(
            OrderStatus.HANDLING, OrderStatus.PROCESSING
        )
        assert description == "Order: Оплата обрабатывается → Оплачен"


class TestItemStateMachine:
    """Тесты жизненного цикла единицы товара"""

    def test_reservation_path(self):
        ItemStateMachine.validate_transition(ItemStatus.SALE, ItemStatus.PRE_RESERVED)
        ItemStateMachine.validate_transition(ItemStatus.PRE_RESERVED, ItemStatus.RESERVED)
        ItemStateMachine.validate_transition(ItemStatus.RESERVED, ItemStatus.PERFORMED)
        ItemStateMachine.validate_transition(ItemStatus.PERFORMED, ItemStatus.REALIZED)

    def test_release_paths(self):
        """Резерв и предварительный резерв возвращаются в продажу"""
        assert ItemStateMachine.can_transition(ItemStatus.PRE_RESERVED, ItemStatus.SALE)
        assert ItemStateMachine.can_transition(ItemStatus.RESERVED, ItemStatus.SALE)

    def test_performed_item_cannot_be_resold(self):
        with pytest.raises(IllegalTransitionError):
            ItemStateMachine.request_transition(ItemStatus.PERFORMED, ItemStatus.SALE)

    def test_sale_cannot_be_reserved_directly(self):
        assert not ItemStateMachine.can_transition(ItemStatus.SALE, ItemStatus.RESERVED)


class TestInvoiceStateMachine:
    """Тесты жизненного цикла счета"""

    def test_happy_path(self):
        path = [
            InvoiceState.EXPECT_PAYMENT,
            InvoiceState.HANDLING,
            InvoiceState.PROCESSING,
            InvoiceState.PERFORMED,
            InvoiceState.REFUNDED,
        ]
        for from_state, to_state in zip(path, path[1:]):
            assert InvoiceStateMachine.can_transition(from_state, to_state)

    @pytest.mark.parametrize(
        "state", [InvoiceState.EXPECT_PAYMENT, InvoiceState.HANDLING, InvoiceState.PROCESSING]
    )
    def test_cancel_before_performed(self, state):
        assert InvoiceStateMachine.can_transition(state, InvoiceState.CANCELED)

    def test_performed_cannot_be_canceled(self):
        with pytest.raises(IllegalTransitionError):
            InvoiceStateMachine.request_transition(InvoiceState.PERFORMED, InvoiceState.CANCELED)

    def test_terminal_states(self):
        assert InvoiceStateMachine.is_terminal_state(InvoiceState.CANCELED)
        assert InvoiceStateMachine.is_terminal_state(InvoiceState.REFUNDED)
        assert not InvoiceStateMachine.is_terminal_state(InvoiceState.PERFORMED)


class TestSubscriptionStateMachine:
    def test_active_to_inactive_only(self):
        SubscriptionStateMachine.validate_transition(
            SubscriptionState.ACTIVE, SubscriptionState.INACTIVE
        )
        with pytest.raises(IllegalTransitionError):
            SubscriptionStateMachine.request_transition(
                SubscriptionState.INACTIVE, SubscriptionState.ACTIVE
            )


class TestTransitionTables:
    """Таблицы переходов неизменяемы"""

    @pytest.mark.parametrize(
        "machine",
        [ItemStateMachine, OrderStateMachine, InvoiceStateMachine, SubscriptionStateMachine],
    )
    def test_table_is_read_only(self, machine):
        with pytest.raises(TypeError):
            machine.TRANSITIONS["hacked"] = frozenset()
        some_state = next(iter(machine.TRANSITIONS))
        assert isinstance(machine.TRANSITIONS[some_state], frozenset)

    @pytest.mark.parametrize(
        ("machine", "statuses"),
        [
            (ItemStateMachine, ItemStatus),
            (OrderStateMachine, OrderStatus),
            (InvoiceStateMachine, InvoiceState),
            (SubscriptionStateMachine, SubscriptionState),
        ],
    )
    def test_every_status_has_row(self, machine, statuses):
        assert set(machine.TRANSITIONS) == set(statuses.all_statuses())

    def test_errors_are_bad_requests(self):
        """Ошибки переходов относятся к группе bad_request"""
        assert issubclass(IllegalTransitionError, BadRequestError)
        assert EqualStateError("Order", OrderStatus.FORM).group == "bad_request"

    def test_transition_is_frozen(self):
        transition = StatusTransition(OrderStatus.FORM, OrderStatus.CANCELLED)
        with pytest.raises(AttributeError):
            transition.to_status = OrderStatus.PERFORMED


MACHINES = [
    (ItemStateMachine, ItemStatus),
    (OrderStateMachine, OrderStatus),
    (InvoiceStateMachine, InvoiceState),
    (SubscriptionStateMachine, SubscriptionState),
]


class TestAllStatusPairs:
    """Каждая пара статусов: переход из таблицы, совпадение или запрет"""

    @pytest.mark.parametrize(
        ("machine", "from_state", "to_state"),
        [
            (machine, from_state, to_state)
            for machine, statuses in MACHINES
            for from_state, to_state in itertools.product(statuses.all_statuses(), repeat=2)
        ],
    )
    def test_request_transition(self, machine, from_state, to_state):
        if from_state == to_state:
            with pytest.raises(EqualStateError):
                machine.request_transition(from_state, to_state)
        elif to_state in machine.TRANSITIONS[from_state]:
            transition = machine.request_transition(from_state, to_state)
            assert transition == StatusTransition(from_status=from_state, to_status=to_state)
        else:
            with pytest.raises(IllegalTransitionError) as exc_info:
                machine.request_transition(from_state, to_state)
            assert exc_info.value.from_state == from_state
            assert exc_info.value.to_state == to_state
