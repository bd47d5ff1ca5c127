# orders/services/order_lifecycle.py

"""
======================================================
PATH: orders/services/order_lifecycle.py
======================================================
ADMIN ORDER TRANSITIONS

Every operation:
1) locks the order row (select_for_update)
2) recomputes the permission vector from the locked row
3) refuses the write if its predicate is false
4) writes the new status tuple + an OrderHistory row

all inside ONE transaction.atomic() block, so two concurrent requests can never
both pass a check computed from a stale tuple.

Results are ActionResult values; domain errors never leave this module.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from orders.models import (
    FulfillmentStatus,
    Order,
    OrderHistory,
    OrderStatus,
    PaymentStatus,
)
from orders.services.action_result import (
    ActionResult,
    OrderNotFoundError,
    OrderServiceError,
    OrderTransitionError,
    first_message,
)
from orders.services.carrier_detection import (
    CARRIER_LABELS,
    CARRIER_OTHER,
    detect_carrier,
    normalize_tracking_number,
    tracking_url_for,
)
from orders.services.order_permissions import permissions_for
from products.services.inventory import release_stock

logger = logging.getLogger(__name__)

_STATUS_FIELDS = ("status", "payment_status", "fulfillment_status")


# =========================================================
# Helpers
# =========================================================
def lock_order(order_id) -> Order:
    """Row-lock an order inside the caller's transaction."""
    try:
        return Order.objects.select_for_update().get(id=order_id)
    except (Order.DoesNotExist, ValidationError, ValueError, TypeError):
        raise OrderNotFoundError("Order not found")


def record_order_history(order: Order, *, action, before: dict, user=None, note="") -> OrderHistory:
    return OrderHistory.objects.create(
        order=order,
        action=action,
        actor=user if getattr(user, "is_authenticated", False) else None,
        note=note or "",
        from_status=before["status"],
        to_status=order.status,
        from_payment_status=before["payment_status"],
        to_payment_status=order.payment_status,
        from_fulfillment_status=before["fulfillment_status"],
        to_fulfillment_status=order.fulfillment_status,
    )


def status_snapshot(order: Order) -> dict:
    return {f: getattr(order, f) for f in _STATUS_FIELDS}


def _run_transition(
    order_id,
    *,
    permission: str,
    refusal: str,
    action: str,
    apply: Callable[[Order], list[str]],
    user=None,
    note: str = "",
    success_message: str = "",
) -> ActionResult:
    try:
        with transaction.atomic():
            order = lock_order(order_id)

            if not getattr(permissions_for(order), permission):
                raise OrderTransitionError(
                    f"{refusal} (status={order.status}, payment={order.payment_status}, "
                    f"fulfillment={order.fulfillment_status})"
                )

            before = status_snapshot(order)
            changed = apply(order)
            order.clean()
            order.save(update_fields=sorted(set(changed) | {"updated_at"}))
            record_order_history(order, action=action, before=before, user=user, note=note)

    except OrderServiceError as exc:
        logger.info(
            "Order transition refused",
            extra={"order_id": str(order_id), "action": action, "reason": str(exc)},
        )
        return exc.to_result(order_id=str(order_id))
    except ValidationError as exc:
        return ActionResult.validation_error(first_message(exc), order_id=str(order_id))

    logger.info(
        "Order transition applied",
        extra={
            "order_id": str(order.id),
            "action": action,
            "status": order.status,
            "payment_status": order.payment_status,
            "fulfillment_status": order.fulfillment_status,
        },
    )
    return ActionResult.success(
        success_message,
        order_id=str(order.id),
        order_number=order.order_number,
        status=order.status,
        payment_status=order.payment_status,
        fulfillment_status=order.fulfillment_status,
    )


def _resolve_tracking(tracking_number, carrier: Optional[str]) -> tuple[str, str, str]:
    """
    Returns (normalized_number, carrier, tracking_url).

    An explicit known carrier wins; otherwise the carrier is detected from the
    number. Unknown carriers keep the number but get no URL.
    """
    number = normalize_tracking_number(tracking_number)
    if not number:
        raise ValidationError("tracking_number is required")

    chosen = (carrier or "").strip().lower()
    if chosen and chosen in CARRIER_LABELS and chosen != CARRIER_OTHER:
        return number, chosen, tracking_url_for(chosen, number) or ""

    detected = detect_carrier(number)
    if chosen == CARRIER_OTHER:
        return number, CARRIER_OTHER, ""
    return number, detected.carrier, detected.url or ""


# =========================================================
# Transitions
# =========================================================
def mark_as_processing(*, order_id, user=None, note: str = "") -> ActionResult:
    def apply(order: Order) -> list[str]:
        order.status = OrderStatus.PROCESSING
        order.fulfillment_status = FulfillmentStatus.PROCESSING
        return ["status", "fulfillment_status"]

    return _run_transition(
        order_id,
        permission="can_mark_as_processing",
        refusal="Order cannot be marked as processing",
        action=OrderHistory.Action.MARKED_PROCESSING,
        apply=apply,
        user=user,
        note=note,
        success_message="Order marked as processing",
    )


def mark_as_paid(*, order_id, user=None, note: str = "") -> ActionResult:
    """Manual payment confirmation (e.g. bank transfer reconciled by an operator)."""

    def apply(order: Order) -> list[str]:
        order.payment_status = PaymentStatus.PAID
        order.paid_at = order.paid_at or timezone.now()
        return ["payment_status", "paid_at"]

    return _run_transition(
        order_id,
        permission="can_mark_as_paid",
        refusal="Order cannot be marked as paid",
        action=OrderHistory.Action.MARKED_PAID,
        apply=apply,
        user=user,
        note=note,
        success_message="Order marked as paid",
    )


def mark_as_shipped(
    *,
    order_id,
    tracking_number,
    carrier: Optional[str] = None,
    user=None,
    note: str = "",
) -> ActionResult:
    def apply(order: Order) -> list[str]:
        number, resolved_carrier, url = _resolve_tracking(tracking_number, carrier)
        order.tracking_number = number
        order.carrier = resolved_carrier
        order.tracking_url = url
        order.status = OrderStatus.SHIPPED
        order.fulfillment_status = FulfillmentStatus.SHIPPED
        order.shipped_at = timezone.now()
        return [
            "tracking_number",
            "carrier",
            "tracking_url",
            "status",
            "fulfillment_status",
            "shipped_at",
        ]

    return _run_transition(
        order_id,
        permission="can_mark_as_shipped",
        refusal="Order cannot be marked as shipped",
        action=OrderHistory.Action.MARKED_SHIPPED,
        apply=apply,
        user=user,
        note=note,
        success_message="Order marked as shipped",
    )


def mark_as_delivered(*, order_id, user=None, note: str = "") -> ActionResult:
    def apply(order: Order) -> list[str]:
        order.status = OrderStatus.DELIVERED
        order.fulfillment_status = FulfillmentStatus.DELIVERED
        order.delivered_at = timezone.now()
        return ["status", "fulfillment_status", "delivered_at"]

    return _run_transition(
        order_id,
        permission="can_mark_as_delivered",
        refusal="Order cannot be marked as delivered",
        action=OrderHistory.Action.MARKED_DELIVERED,
        apply=apply,
        user=user,
        note=note,
        success_message="Order marked as delivered",
    )


def revert_to_processing(*, order_id, user=None, note: str = "") -> ActionResult:
    def apply(order: Order) -> list[str]:
        order.status = OrderStatus.PROCESSING
        order.fulfillment_status = FulfillmentStatus.PROCESSING
        order.shipped_at = None
        return ["status", "fulfillment_status", "shipped_at"]

    return _run_transition(
        order_id,
        permission="can_revert_to_processing",
        refusal="Order cannot be reverted to processing",
        action=OrderHistory.Action.REVERTED_TO_PROCESSING,
        apply=apply,
        user=user,
        note=note,
        success_message="Order reverted to processing",
    )


def update_tracking(
    *,
    order_id,
    tracking_number,
    carrier: Optional[str] = None,
    user=None,
    note: str = "",
) -> ActionResult:
    def apply(order: Order) -> list[str]:
        number, resolved_carrier, url = _resolve_tracking(tracking_number, carrier)
        order.tracking_number = number
        order.carrier = resolved_carrier
        order.tracking_url = url
        return ["tracking_number", "carrier", "tracking_url"]

    return _run_transition(
        order_id,
        permission="can_update_tracking",
        refusal="Tracking cannot be updated for this order",
        action=OrderHistory.Action.TRACKING_UPDATED,
        apply=apply,
        user=user,
        note=note,
        success_message="Tracking updated",
    )


def cancel_order(*, order_id, user=None, note: str = "") -> ActionResult:
    """
    Cancel a PENDING or PROCESSING order.

    Reserved stock goes back on the shelf only while payment is still PENDING.
    A paid order keeps payment_status=PAID: the money is returned through a refund.
    """

    def apply(order: Order) -> list[str]:
        if order.payment_status == PaymentStatus.PENDING:
            for item in order.items.all():
                if item.sku_id:
                    release_stock(
                        sku_id=item.sku_id,
                        quantity=item.quantity,
                        order=order,
                        user=user if getattr(user, "is_authenticated", False) else None,
                    )

        order.status = OrderStatus.CANCELLED
        order.fulfillment_status = FulfillmentStatus.UNFULFILLED
        order.cancelled_at = timezone.now()
        return ["status", "fulfillment_status", "cancelled_at"]

    return _run_transition(
        order_id,
        permission="can_cancel",
        refusal="Order cannot be cancelled",
        action=OrderHistory.Action.CANCELLED,
        apply=apply,
        user=user,
        note=note,
        success_message="Order cancelled",
    )


def mark_as_returned(*, order_id, user=None, note: str = "") -> ActionResult:
    def apply(order: Order) -> list[str]:
        order.fulfillment_status = FulfillmentStatus.RETURNED
        order.returned_at = timezone.now()
        return ["fulfillment_status", "returned_at"]

    return _run_transition(
        order_id,
        permission="can_mark_as_returned",
        refusal="Order cannot be marked as returned",
        action=OrderHistory.Action.RETURNED,
        apply=apply,
        user=user,
        note=note,
        success_message="Order marked as returned",
    )
