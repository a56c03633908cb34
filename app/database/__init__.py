"""
Database package: SQLAlchemy модели и подключение к БД
"""

from app.database.orm_database import ORMDatabase
from app.database.orm_models import Base, Invoice, Item, Order, Product, Subscription, User


__all__ = [
    "Base",
    "Invoice",
    "Item",
    "ORMDatabase",
    "Order",
    "Product",
    "Subscription",
    "User",
]
