"""
SQLAlchemy ORM модели для базы данных
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, declarative_base, mapped_column, relationship

from app.core.constants import (
    InvoiceState,
    ItemStatus,
    OrderStatus,
    PaymentMethod,
    ProductType,
    SubscriptionState,
)
from app.utils.helpers import utc_now


# Базовый класс для всех моделей
Base = declarative_base()


def _in_clause(column: str, values: list[str]) -> str:
    quoted = ", ".join(f"'{value}'" for value in values)
    return f"{column} IN ({quoted})"


class User(Base):
    """Покупатель (справочник пользователей)"""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    telegram_id: Mapped[int] = mapped_column(BigInteger, unique=True, nullable=False)
    chat_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    username: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)

    __table_args__ = (Index("idx_users_telegram_id", "telegram_id"),)


class Product(Base):
    """Товар каталога"""

    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    type: Mapped[str] = mapped_column(String(50), nullable=False, default=ProductType.SUBSCRIPTION)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    # Длительность подписки в секундах
    subscription_period: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utc_now, onupdate=utc_now
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    items: Mapped[list["Item"]] = relationship("Item", back_populates="product")

    __table_args__ = (
        CheckConstraint("price >= 0", name="chk_products_price"),
        CheckConstraint("subscription_period >= 0", name="chk_products_period"),
    )


class Item(Base):
    """Единица товара на складе"""

    __tablename__ = "items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=ItemStatus.SALE)
    # Выдаваемое содержимое (например, лицензионный ключ)
    payload: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")

    product: Mapped["Product"] = relationship("Product", back_populates="items")

    __table_args__ = (
        Index("idx_items_product_status", "product_id", "status"),
        Index("idx_items_status_updated", "status", "updated_at"),
        CheckConstraint(_in_clause("status", ItemStatus.all_statuses()), name="chk_items_status"),
    )


class Order(Base):
    """Заказ покупателя"""

    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=OrderStatus.FORM)
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    ttl: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    # Последний статус, о котором покупатель успешно уведомлен
    notified_status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")

    __table_args__ = (
        Index("idx_orders_user_id", "user_id"),
        Index("idx_orders_status_ttl", "status", "ttl"),
        Index("idx_orders_item_id", "item_id"),
        CheckConstraint(_in_clause("status", OrderStatus.all_statuses()), name="chk_orders_status"),
    )


class Invoice(Base):
    """Счет на оплату заказа (одна попытка оплаты)"""

    __tablename__ = "invoices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id"), nullable=False)
    state: Mapped[str] = mapped_column(
        String(20), nullable=False, default=InvoiceState.EXPECT_PAYMENT
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    payment_method: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PaymentMethod.TELEGRAM
    )
    # ID транзакции у провайдера, заполняется при переходе в handling/processing
    provider_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")

    __table_args__ = (
        Index("idx_invoices_order_id", "order_id"),
        Index("idx_invoices_state_updated", "state", "updated_at"),
        CheckConstraint(
            _in_clause("state", InvoiceState.all_statuses()), name="chk_invoices_state"
        ),
    )


class Subscription(Base):
    """Подписка, выданная по выполненному заказу"""

    __tablename__ = "subscriptions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id"), unique=True, nullable=False)
    state: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SubscriptionState.ACTIVE
    )
    deadline: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    notified_state: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")

    __table_args__ = (
        Index("idx_subscriptions_state_deadline", "state", "deadline"),
        Index("idx_subscriptions_user_id", "user_id"),
        CheckConstraint(
            _in_clause("state", SubscriptionState.all_statuses()), name="chk_subscriptions_state"
        ),
    )
