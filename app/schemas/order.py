"""Pydantic схемы для заказов"""
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.core.constants import OrderStatus


class OrderFilters(BaseModel):
    """Фильтры списка заказов"""

    user_id: int | None = Field(None, gt=0, description="Владелец заказов")
    statuses: list[str] = Field(default_factory=list, description="Статусы (пусто - все)")
    ttl_from: datetime | None = Field(None, description="TTL не раньше")
    ttl_to: datetime | None = Field(None, description="TTL не позже")
    limit: int = Field(20, ge=1, le=100)
    offset: int = Field(0, ge=0)

    @field_validator("statuses")
    @classmethod
    def validate_statuses(cls, v: list[str]) -> list[str]:
        """Валидация статусов - должны быть из списка"""
        valid = OrderStatus.all_statuses()
        unknown = [status for status in v if status not in valid]
        if unknown:
            raise ValueError(f"Недопустимые статусы: {', '.join(unknown)}")
        return v

    @model_validator(mode="after")
    def validate_ttl_window(self) -> "OrderFilters":
        """Проверка, что окно TTL не перевернуто"""
        if self.ttl_from and self.ttl_to and self.ttl_from > self.ttl_to:
            raise ValueError("ttl_from должен быть не позже ttl_to")
        return self


class OrderProduct(BaseModel):
    """Снимок товара в заказе (собирается при чтении из Item и Product)"""

    item_id: int
    product_id: int
    title: str
    description: str


class OrderView(BaseModel):
    """Заказ для отображения покупателю"""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    status: str
    total_price: Decimal
    currency: str
    ttl: datetime
    created_at: datetime
    updated_at: datetime
    product: OrderProduct | None = None
