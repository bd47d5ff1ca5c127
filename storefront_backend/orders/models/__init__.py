"""
PATH: orders/models/__init__.py

Orders models export surface.
"""

from .history import OrderHistory, RefundHistory
from .order import Order
from .order_item import OrderItem
from .refund import Refund, RefundItem
from .status import (
    ACTIVE_REFUND_STATUSES,
    CAPTURED_PAYMENT_STATUSES,
    RESTOCK_BY_DEFAULT_REASONS,
    FulfillmentStatus,
    OrderStatus,
    PaymentStatus,
    RefundReason,
    RefundStatus,
)

__all__ = [
    "ACTIVE_REFUND_STATUSES",
    "CAPTURED_PAYMENT_STATUSES",
    "RESTOCK_BY_DEFAULT_REASONS",
    "FulfillmentStatus",
    "Order",
    "OrderHistory",
    "OrderItem",
    "OrderStatus",
    "PaymentStatus",
    "Refund",
    "RefundHistory",
    "RefundItem",
    "RefundReason",
    "RefundStatus",
]
