# orders/services/return_request.py

"""
CUSTOMER RETURN REQUEST

A customer may ask to send back a delivered order:
- only their own order
- order DELIVERED and paid (PAID or PARTIALLY_REFUNDED)
- within RETURN_WINDOW_DAYS of delivery
- no other refund already waiting for review

The request stages a REQUESTED refund for every remaining quantity, with
restock on. An operator then processes or rejects it like any other refund.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from orders.models import FulfillmentStatus, OrderStatus, RefundReason, RefundStatus
from orders.services.action_result import (
    ActionResult,
    OrderNotFoundError,
    OrderServiceError,
    first_message,
)
from orders.services.order_lifecycle import lock_order
from orders.services.refund_calculation import available_quantity, refunded_quantity_by_item
from orders.services.refund_orchestrator import (
    RefundNotAllowedError,
    stage_refund_for_locked_order,
)

logger = logging.getLogger(__name__)


def return_window_days() -> int:
    return int(getattr(settings, "RETURN_WINDOW_DAYS", 14) or 14)


def _ensure_returnable(order, *, now) -> None:
    if order.status != OrderStatus.DELIVERED or order.fulfillment_status != FulfillmentStatus.DELIVERED:
        raise RefundNotAllowedError("Only delivered orders can be returned")

    if not order.delivered_at:
        raise RefundNotAllowedError("Delivery date is unknown for this order")

    deadline = order.delivered_at + timedelta(days=return_window_days())
    if now > deadline:
        raise RefundNotAllowedError(
            f"The {return_window_days()}-day return window has closed"
        )

    if order.refunds.filter(status=RefundStatus.REQUESTED).exists():
        raise RefundNotAllowedError("A refund request is already pending for this order")


def request_return(*, order_id, user, reason=None, note: str = "") -> ActionResult:
    try:
        with transaction.atomic():
            order = lock_order(order_id)

            # Someone else's order looks exactly like a missing one.
            if not user or order.user_id != getattr(user, "id", None):
                raise OrderNotFoundError("Order not found")

            _ensure_returnable(order, now=timezone.now())

            refunded = refunded_quantity_by_item(order)
            lines = [
                {
                    "order_item_id": str(item.id),
                    "quantity": available_quantity(item, refunded),
                    "restock": True,
                }
                for item in order.items.all()
                if available_quantity(item, refunded) > 0
            ]
            if not lines:
                raise ValidationError("Nothing left to return on this order.")

            refund = stage_refund_for_locked_order(
                order=order,
                items=lines,
                reason=reason or RefundReason.CUSTOMER_REQUEST,
                note=note,
                user=user,
            )
    except OrderServiceError as exc:
        return exc.to_result(order_id=str(order_id))
    except ValidationError as exc:
        return ActionResult.validation_error(first_message(exc), order_id=str(order_id))

    logger.info(
        "Return requested",
        extra={"order_id": str(order_id), "refund_id": str(refund.id), "amount": refund.amount},
    )
    return ActionResult.success(
        "Return requested",
        refund_id=str(refund.id),
        order_id=str(order_id),
        amount=int(refund.amount),
        status=refund.status,
    )
