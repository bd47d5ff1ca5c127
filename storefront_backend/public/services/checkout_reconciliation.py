# public/services/checkout_reconciliation.py

"""
CHECKOUT RECONCILIATION

Drives an order from gateway truth. Shared by:
- the customer's return from the hosted payment page (checkout_return view)
- the signed gateway webhook (stripe_webhook view)

Rules:
- Branch on the gateway's own session fields, never on local assumptions.
- The order to update comes from session metadata (set authoritatively when
  the session was created); the inbound order id is only a fallback and must
  match the session recorded on the order.
- Every write locks the order row and checks its current state first, so
  repeated arrivals (refresh / back / webhook retries) are no-ops.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from orders.models import Order, OrderHistory, OrderStatus, PaymentStatus
from orders.services.action_result import OrderNotFoundError
from orders.services.order_lifecycle import (
    lock_order,
    record_order_history,
    status_snapshot,
)
from products.services.inventory import release_stock
from public.services.stripe_gateway import CheckoutSession

logger = logging.getLogger(__name__)

OUTCOME_PAID = "paid"
OUTCOME_PENDING = "pending"
OUTCOME_OPEN = "open"
OUTCOME_EXPIRED = "expired"
OUTCOME_FAILED = "failed"
OUTCOME_UNKNOWN = "unknown"

_PAID_SESSION_STATES = {"paid", "no_payment_required"}

# A capture that arrives late still wins over an earlier failure/expiry.
_CAPTURABLE_PAYMENT_STATES = {PaymentStatus.PENDING, PaymentStatus.FAILED, PaymentStatus.EXPIRED}


class SessionOrderMismatchError(Exception):
    """The session does not belong to the order it was presented with."""


@dataclass(frozen=True)
class ReconciliationOutcome:
    kind: str
    order_id: str = ""
    order_number: str = ""
    changed: bool = False


def classify_session(session: CheckoutSession) -> str:
    if session.status == "complete" and session.payment_status in _PAID_SESSION_STATES:
        return OUTCOME_PAID
    if session.status == "complete" and session.payment_status == "unpaid":
        return OUTCOME_PENDING
    if session.status == "open":
        return OUTCOME_OPEN
    if session.status == "expired":
        return OUTCOME_EXPIRED
    return OUTCOME_UNKNOWN


def _release_reservation(order: Order) -> None:
    for item in order.items.all():
        if item.sku_id:
            release_stock(sku_id=item.sku_id, quantity=item.quantity, order=order)


def _lock_session_order(session: CheckoutSession, fallback_order_id) -> Order:
    metadata_order_id = (session.metadata or {}).get("order_id") or ""
    order = lock_order(metadata_order_id or fallback_order_id)

    if order.checkout_session_id and order.checkout_session_id != session.id:
        raise SessionOrderMismatchError(
            f"Session {session.id} does not belong to order {order.id}"
        )
    if not metadata_order_id and not order.checkout_session_id:
        raise SessionOrderMismatchError(
            f"Order {order.id} has no recorded session to match {session.id}"
        )
    return order


def _apply_paid(order: Order, session: CheckoutSession, *, source: str) -> bool:
    if order.payment_status not in _CAPTURABLE_PAYMENT_STATES:
        return False

    if session.amount_total is not None and int(session.amount_total) != int(order.total):
        raise ValidationError(
            f"Amount mismatch: session {session.amount_total} vs order {order.total}"
        )

    before = status_snapshot(order)
    # failed/expired sessions and cancelled orders have already given their stock back
    was_released = (
        order.payment_status in (PaymentStatus.FAILED, PaymentStatus.EXPIRED)
        or order.status == OrderStatus.CANCELLED
    )

    order.payment_status = PaymentStatus.PAID
    order.paid_at = order.paid_at or timezone.now()
    order.payment_intent_id = session.payment_intent or order.payment_intent_id
    order.checkout_session_id = session.id
    order.save(
        update_fields=[
            "payment_status",
            "paid_at",
            "payment_intent_id",
            "checkout_session_id",
            "updated_at",
        ]
    )

    note = f"{source}: session {session.id}"
    if was_released:
        logger.warning(
            "Late capture on a released order; stock must be re-checked manually",
            extra={
                "order_id": str(order.id),
                "session_id": session.id,
                "order_status": order.status,
            },
        )
        note = f"{note} (late capture on a {order.status.lower()} order, stock was released)"

    record_order_history(
        order,
        action=OrderHistory.Action.PAYMENT_CONFIRMED,
        before=before,
        note=note,
    )
    return True


def _apply_unpaid_terminal(order: Order, session: CheckoutSession, *, status: str, action, source: str) -> bool:
    if order.payment_status != PaymentStatus.PENDING:
        return False

    before = status_snapshot(order)
    order.payment_status = status
    order.checkout_session_id = order.checkout_session_id or session.id
    order.save(update_fields=["payment_status", "checkout_session_id", "updated_at"])
    # cancel_order already gave the stock of an unpaid order back
    if order.status != OrderStatus.CANCELLED:
        _release_reservation(order)

    record_order_history(
        order,
        action=action,
        before=before,
        note=f"{source}: session {session.id}",
    )
    return True


def apply_session(
    session: CheckoutSession,
    *,
    fallback_order_id=None,
    kind: Optional[str] = None,
    source: str = "checkout_return",
) -> ReconciliationOutcome:
    """
    Apply a gateway session state to its order. Idempotent.

    `kind` overrides the classification (webhooks know the event type, e.g. an
    async payment failure arrives on a "complete" session).

    Raises OrderNotFoundError / SessionOrderMismatchError / ValidationError;
    callers at the HTTP edge translate those.
    """
    kind = kind or classify_session(session)
    changed = False

    with transaction.atomic():
        order = _lock_session_order(session, fallback_order_id)

        if kind == OUTCOME_PAID:
            changed = _apply_paid(order, session, source=source)
        elif kind == OUTCOME_EXPIRED:
            changed = _apply_unpaid_terminal(
                order,
                session,
                status=PaymentStatus.EXPIRED,
                action=OrderHistory.Action.PAYMENT_EXPIRED,
                source=source,
            )
        elif kind == OUTCOME_FAILED:
            changed = _apply_unpaid_terminal(
                order,
                session,
                status=PaymentStatus.FAILED,
                action=OrderHistory.Action.PAYMENT_FAILED,
                source=source,
            )

    logger.info(
        "Checkout session reconciled",
        extra={
            "order_id": str(order.id),
            "session_id": session.id,
            "outcome": kind,
            "changed": changed,
            "source": source,
        },
    )
    return ReconciliationOutcome(
        kind=kind,
        order_id=str(order.id),
        order_number=(session.metadata or {}).get("order_number") or "",
        changed=changed,
    )


__all__ = [
    "OUTCOME_EXPIRED",
    "OUTCOME_FAILED",
    "OUTCOME_OPEN",
    "OUTCOME_PAID",
    "OUTCOME_PENDING",
    "OUTCOME_UNKNOWN",
    "OrderNotFoundError",
    "ReconciliationOutcome",
    "SessionOrderMismatchError",
    "apply_session",
    "classify_session",
]
