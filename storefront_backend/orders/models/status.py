# orders/models/status.py

"""
======================================================
PATH: orders/models/status.py
======================================================
ORDER STATUS DIMENSIONS

An order carries three status dimensions that move semi-independently:

- OrderStatus        PENDING -> PROCESSING -> SHIPPED -> DELIVERED
                     CANCELLED reachable from PENDING or PROCESSING only
- PaymentStatus      PENDING -> PAID -> PARTIALLY_REFUNDED -> REFUNDED
                     PENDING -> FAILED / EXPIRED
- FulfillmentStatus  UNFULFILLED -> PROCESSING -> SHIPPED -> DELIVERED
                     RETURNED only after SHIPPED

All values persist as plain strings; these enums are the only accepted values.
"""

from __future__ import annotations

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    PROCESSING = "PROCESSING", "Processing"
    SHIPPED = "SHIPPED", "Shipped"
    DELIVERED = "DELIVERED", "Delivered"
    CANCELLED = "CANCELLED", "Cancelled"


class PaymentStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    PAID = "PAID", "Paid"
    FAILED = "FAILED", "Failed"
    EXPIRED = "EXPIRED", "Expired"
    PARTIALLY_REFUNDED = "PARTIALLY_REFUNDED", "Partially refunded"
    REFUNDED = "REFUNDED", "Refunded"


class FulfillmentStatus(models.TextChoices):
    UNFULFILLED = "UNFULFILLED", "Unfulfilled"
    PROCESSING = "PROCESSING", "Processing"
    SHIPPED = "SHIPPED", "Shipped"
    DELIVERED = "DELIVERED", "Delivered"
    RETURNED = "RETURNED", "Returned"


class RefundStatus(models.TextChoices):
    REQUESTED = "REQUESTED", "Requested"
    PROCESSED = "PROCESSED", "Processed"
    REJECTED = "REJECTED", "Rejected"
    CANCELLED = "CANCELLED", "Cancelled"


class RefundReason(models.TextChoices):
    CUSTOMER_REQUEST = "CUSTOMER_REQUEST", "Customer request"
    DEFECTIVE = "DEFECTIVE", "Defective product"
    WRONG_ITEM = "WRONG_ITEM", "Wrong item shipped"
    LOST_IN_TRANSIT = "LOST_IN_TRANSIT", "Lost in transit"
    FRAUD = "FRAUD", "Fraud"
    OTHER = "OTHER", "Other"


# Payment states in which money has been captured (and may still be refunded).
CAPTURED_PAYMENT_STATUSES = frozenset(
    {
        PaymentStatus.PAID,
        PaymentStatus.PARTIALLY_REFUNDED,
        PaymentStatus.REFUNDED,
    }
)

# Refund states that count against an item's refundable quantity and the order balance.
ACTIVE_REFUND_STATUSES = frozenset({RefundStatus.REQUESTED, RefundStatus.PROCESSED})

# Reasons for which returned goods go back on the shelf unless told otherwise.
RESTOCK_BY_DEFAULT_REASONS = frozenset(
    {RefundReason.CUSTOMER_REQUEST, RefundReason.WRONG_ITEM}
)
