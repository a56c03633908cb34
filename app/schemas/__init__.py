"""Pydantic schemas package"""
from app.schemas.order import OrderFilters, OrderProduct, OrderView
from app.schemas.payment import InvoicePayload, ProviderTransaction, parse_invoice_payload


__all__ = [
    # Order schemas
    "OrderFilters",
    "OrderProduct",
    "OrderView",
    # Payment schemas
    "InvoicePayload",
    "ProviderTransaction",
    "parse_invoice_payload",
]
