"""
Domain layer для бизнес-логики
"""

from app.domain.state_machines import (
    EqualStateError,
    IllegalTransitionError,
    InvoiceStateMachine,
    ItemStateMachine,
    OrderStateMachine,
    StatusMachine,
    StatusTransition,
    SubscriptionStateMachine,
)


__all__ = [
    "EqualStateError",
    "IllegalTransitionError",
    "InvoiceStateMachine",
    "ItemStateMachine",
    "OrderStateMachine",
    "StatusMachine",
    "StatusTransition",
    "SubscriptionStateMachine",
]
