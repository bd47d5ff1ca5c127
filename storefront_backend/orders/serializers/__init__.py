from .commands import (
    RefundCreateCommandSerializer,
    RefundRejectCommandSerializer,
    ReturnRequestCommandSerializer,
    TrackingCommandSerializer,
    TransitionNoteSerializer,
)
from .order import (
    CustomerOrderSerializer,
    OrderDetailSerializer,
    OrderHistorySerializer,
    OrderItemSerializer,
    OrderSerializer,
)
from .refund import RefundSerializer

__all__ = [
    "CustomerOrderSerializer",
    "OrderDetailSerializer",
    "OrderHistorySerializer",
    "OrderItemSerializer",
    "OrderSerializer",
    "RefundCreateCommandSerializer",
    "RefundRejectCommandSerializer",
    "RefundSerializer",
    "ReturnRequestCommandSerializer",
    "TrackingCommandSerializer",
    "TransitionNoteSerializer",
]
