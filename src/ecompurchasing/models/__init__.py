"""Data models."""

from .order import Order, OrderStatus
from .product import Product
from .receipt import EventLog, Receipt, TransactionResult

__all__ = [
    "EventLog",
    "Order",
    "OrderStatus",
    "Product",
    "Receipt",
    "TransactionResult",
]
