# orders/services/refund_calculation.py

"""
REFUND CALCULATION HELPERS

Read-side arithmetic shared by refund creation, the return-request flow and the
admin API. All amounts are integer minor units.

"Active" refunds (REQUESTED + PROCESSED) count against both an item's
refundable quantity and the order's refundable balance; REJECTED and CANCELLED
refunds release what they had reserved.
"""

from __future__ import annotations

from typing import Iterable

from django.db.models import Sum

from orders.models import (
    ACTIVE_REFUND_STATUSES,
    Order,
    OrderItem,
    PaymentStatus,
    Refund,
    RefundItem,
    RefundStatus,
)


def refunded_quantity_by_item(order: Order) -> dict:
    """{order_item_id: quantity held by active refunds}"""
    rows = (
        RefundItem.objects.filter(
            refund__order=order, refund__status__in=ACTIVE_REFUND_STATUSES
        )
        .values("order_item_id")
        .annotate(total=Sum("quantity"))
    )
    return {row["order_item_id"]: int(row["total"] or 0) for row in rows}


def available_quantity(item: OrderItem, refunded_by_item: dict) -> int:
    return max(int(item.quantity) - int(refunded_by_item.get(item.id, 0)), 0)


def refunded_amount(order: Order, statuses: Iterable[str] = ACTIVE_REFUND_STATUSES) -> int:
    return int(
        Refund.objects.filter(order=order, status__in=list(statuses))
        .aggregate(total=Sum("amount"))
        .get("total")
        or 0
    )


def processed_amount(order: Order) -> int:
    return refunded_amount(order, statuses=[RefundStatus.PROCESSED])


def max_refundable(order: Order) -> int:
    """Remaining balance not yet claimed by an active refund."""
    return max(int(order.total) - refunded_amount(order), 0)


def selection_amount(lines: Iterable[tuple[OrderItem, int]]) -> int:
    """Σ unit_price × quantity for (order_item, quantity) pairs."""
    return sum(int(item.unit_price) * int(qty) for item, qty in lines)


def payment_status_after_refunds(order: Order) -> str:
    """
    Aggregate payment status once a refund has been processed:
    REFUNDED when processed refunds cover the total, else PARTIALLY_REFUNDED.
    """
    processed = processed_amount(order)
    if processed <= 0:
        return order.payment_status
    if processed >= int(order.total):
        return PaymentStatus.REFUNDED
    return PaymentStatus.PARTIALLY_REFUNDED


def refund_summary(order: Order) -> dict:
    """Per-item availability and order balance, as consumed by the admin console."""
    refunded = refunded_quantity_by_item(order)
    items = [
        {
            "order_item_id": str(item.id),
            "product_title": item.product_title,
            "unit_price": int(item.unit_price),
            "quantity": int(item.quantity),
            "refunded_quantity": int(refunded.get(item.id, 0)),
            "available_quantity": available_quantity(item, refunded),
        }
        for item in order.items.all()
    ]
    return {
        "order_id": str(order.id),
        "total": int(order.total),
        "refunded_amount": refunded_amount(order),
        "processed_amount": processed_amount(order),
        "max_refundable": max_refundable(order),
        "items": items,
    }
