"""
Handlers package
"""

from app.handlers.common import router as common_router
from app.handlers.orders import router as orders_router
from app.handlers.payment import router as payment_router


# ВАЖНО: payment_router первым, чтобы successful_payment не перехватили другие обработчики сообщений
routers = [
    payment_router,
    orders_router,
    common_router,
]

__all__ = ["routers"]
