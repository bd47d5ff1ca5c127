"""
======================================================
PATH: orders/services/refund_orchestrator.py
======================================================
REFUND ORCHESTRATOR (APPLICATION SERVICE)

Purpose:
- Stage refunds for human review (create -> REQUESTED, no money moves).
- Execute staged refunds against the payment gateway (process).
- Close staged refunds without moving money (reject / cancel).
- Restore stock for restocked lines with atomic increments.

Refund lifecycle:
    REQUESTED -> PROCESSED | REJECTED | CANCELLED

Process is split in three steps because the gateway and the database cannot
share a transaction:
1) lock + check the refund is still REQUESTED, then stamp
   processing_started_at (short transaction). From then on reject/cancel
   are refused: the gateway may move money at any point after this.
2) call the gateway with idempotency key "refund_<id>" (no DB locks held),
   or re-read the bound gateway refund when one is already recorded
3) lock again and settle what the gateway reported:
   - succeeded: PROCESSED + restock + payment status in ONE transaction.
     A gateway refund id that is already recorded is never applied twice.
   - pending: bind gateway_refund_id, stay REQUESTED (still in flight)
   - failed / canceled: CANCELLED, no money moved

Pending refunds are finished by apply_gateway_refund_update (webhook) or by
calling process again. A gateway call that provably failed releases the
marker; one whose outcome is unknown keeps it until a retry settles it.

Conservation rules (checked under the order row lock):
- per item: Σ active refunded quantity <= ordered quantity
- per order: Σ active refund amounts <= order total
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Iterable, Optional

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from orders.models import (
    RESTOCK_BY_DEFAULT_REASONS,
    Order,
    OrderHistory,
    OrderStatus,
    PaymentStatus,
    Refund,
    RefundHistory,
    RefundItem,
    RefundReason,
    RefundStatus,
)
from orders.services.action_result import (
    ActionResult,
    ActionStatus,
    OrderServiceError,
    first_message,
)
from orders.services.order_lifecycle import (
    lock_order,
    record_order_history,
    status_snapshot,
)
from orders.services.refund_calculation import (
    available_quantity,
    max_refundable,
    payment_status_after_refunds,
    refunded_quantity_by_item,
    selection_amount,
)
from products.services.inventory import restock_for_refund
from public.services import stripe_gateway

logger = logging.getLogger(__name__)

REFUNDABLE_PAYMENT_STATUSES = {PaymentStatus.PAID, PaymentStatus.PARTIALLY_REFUNDED}


# =========================================================
# Domain errors
# =========================================================
class RefundError(OrderServiceError):
    pass


class RefundNotFoundError(RefundError):
    result_status = ActionStatus.NOT_FOUND


class RefundNotAllowedError(RefundError):
    """The order is not in a refundable state."""

    result_status = ActionStatus.PERMISSION_ERROR


class InvalidRefundStateError(RefundError):
    """The refund is no longer REQUESTED."""

    result_status = ActionStatus.PERMISSION_ERROR


class DuplicateGatewayRefundError(RefundError):
    result_status = ActionStatus.PERMISSION_ERROR


# =========================================================
# Helpers
# =========================================================
def _actor(user):
    return user if getattr(user, "is_authenticated", False) else None


def _lock_refund(refund_id) -> Refund:
    try:
        return Refund.objects.select_for_update().get(id=refund_id)
    except (Refund.DoesNotExist, ValidationError, ValueError, TypeError):
        raise RefundNotFoundError("Refund not found")


def _record_refund_history(refund: Refund, *, action, user=None, note="") -> RefundHistory:
    return RefundHistory.objects.create(
        refund=refund,
        action=action,
        actor=_actor(user),
        note=note or "",
    )


def _normalize_reason(reason) -> str:
    value = str(reason or RefundReason.CUSTOMER_REQUEST).strip().upper()
    if value not in RefundReason.values:
        raise ValidationError(f"Invalid refund reason: {reason}")
    return value


def _to_int_qty(value) -> int:
    if isinstance(value, bool):
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def assert_order_refundable(order: Order) -> None:
    """
    Money must have been captured and not fully returned yet.

    CANCELLED and DELIVERED orders still accept refunds; only unpaid or
    never-started orders are refused.
    """
    if order.payment_status not in REFUNDABLE_PAYMENT_STATUSES:
        raise RefundNotAllowedError(
            f"Order {order.order_number} cannot be refunded (payment={order.payment_status})"
        )
    if order.status == OrderStatus.PENDING:
        raise RefundNotAllowedError(
            f"Order {order.order_number} cannot be refunded before processing starts"
        )


def _normalize_lines(*, order: Order, items, reason: str) -> list[dict]:
    """
    Normalize refund lines:
    - list of {order_item_id, quantity, restock?}
    - quantity must be an integer >= 1
    - aggregates duplicates by order_item_id
    - order_item_id must belong to this order
    - restock defaults from the refund reason
    """
    if not isinstance(items, (list, tuple)) or not items:
        raise ValidationError("A refund requires at least one item.")

    order_items = {str(oi.id): oi for oi in order.items.all()}
    default_restock = reason in RESTOCK_BY_DEFAULT_REASONS

    agg: "OrderedDict[str, dict]" = OrderedDict()
    for line in items:
        if not isinstance(line, dict):
            raise ValidationError("Refund items must be objects.")

        oid = str(line.get("order_item_id") or "").strip()
        if not oid:
            raise ValidationError("Each refund item must include order_item_id.")
        if oid not in order_items:
            raise ValidationError(f"Item {oid} does not belong to this order.")

        qty = _to_int_qty(line.get("quantity"))
        if qty <= 0:
            raise ValidationError(f"Refund quantity for item {oid} must be an integer >= 1.")

        restock = line.get("restock")
        restock = default_restock if restock is None else bool(restock)

        if oid in agg:
            if agg[oid]["restock"] != restock:
                raise ValidationError(f"Conflicting restock flags for item {oid}.")
            agg[oid]["quantity"] += qty
        else:
            agg[oid] = {"order_item": order_items[oid], "quantity": qty, "restock": restock}

    return list(agg.values())


def _ensure_item_ceilings(*, order: Order, lines: list[dict]) -> None:
    refunded = refunded_quantity_by_item(order)

    for line in lines:
        item = line["order_item"]
        qty = int(line["quantity"])
        remaining = available_quantity(item, refunded)

        if remaining <= 0:
            raise ValidationError(f"Item {item.id} has no refundable quantity remaining.")
        if qty > remaining:
            raise ValidationError(
                f"Over-refund detected for item {item.id}. "
                f"Remaining refundable qty: {remaining}, requested: {qty}"
            )


def stage_refund_for_locked_order(
    *,
    order: Order,
    items,
    reason=None,
    note: str = "",
    user=None,
) -> Refund:
    """
    Validate and persist a REQUESTED refund.

    The caller MUST hold the order row lock (select_for_update) inside the
    current transaction, so concurrent creates cannot both pass the ceilings.
    """
    assert_order_refundable(order)

    reason = _normalize_reason(reason)
    lines = _normalize_lines(order=order, items=items, reason=reason)
    _ensure_item_ceilings(order=order, lines=lines)

    amount = selection_amount((line["order_item"], line["quantity"]) for line in lines)
    if amount <= 0:
        raise ValidationError("Refund amount must be greater than zero.")

    remaining_balance = max_refundable(order)
    if amount > remaining_balance:
        raise ValidationError(
            f"Refund amount {amount} exceeds the remaining refundable balance {remaining_balance}."
        )

    refund = Refund.objects.create(
        order=order,
        amount=amount,
        currency=order.currency,
        reason=reason,
        note=(note or "").strip(),
        requested_by=_actor(user),
    )

    RefundItem.objects.bulk_create(
        [
            RefundItem(
                refund=refund,
                order_item=line["order_item"],
                quantity=int(line["quantity"]),
                amount=int(line["order_item"].unit_price) * int(line["quantity"]),
                restock=bool(line["restock"]),
            )
            for line in lines
        ]
    )

    _record_refund_history(refund, action=RefundHistory.Action.CREATED, user=user, note=note)
    return refund


def _refund_payload(refund: Refund) -> dict:
    return {
        "refund_id": str(refund.id),
        "order_id": str(refund.order_id),
        "amount": int(refund.amount),
        "status": refund.status,
        "gateway_refund_id": refund.gateway_refund_id or "",
    }


# =========================================================
# Create
# =========================================================
def create_refund(
    *,
    order_id,
    items: Iterable[dict],
    reason=None,
    note: str = "",
    user=None,
) -> ActionResult:
    try:
        with transaction.atomic():
            order = lock_order(order_id)
            refund = stage_refund_for_locked_order(
                order=order, items=list(items or []), reason=reason, note=note, user=user
            )
    except OrderServiceError as exc:
        return exc.to_result(order_id=str(order_id))
    except ValidationError as exc:
        logger.info(
            "Refund creation rejected",
            extra={"order_id": str(order_id), "reason": first_message(exc)},
        )
        return ActionResult.validation_error(first_message(exc), order_id=str(order_id))

    logger.info(
        "Refund requested",
        extra={"order_id": str(order_id), "refund_id": str(refund.id), "amount": refund.amount},
    )
    return ActionResult.success("Refund requested", **_refund_payload(refund))


# =========================================================
# Process
# =========================================================
def _ensure_gateway_id_free(refund: Refund, gateway_refund_id: str) -> None:
    if refund.gateway_refund_id and refund.gateway_refund_id != gateway_refund_id:
        raise InvalidRefundStateError(
            f"Refund is already bound to gateway refund {refund.gateway_refund_id}"
        )
    if Refund.objects.filter(gateway_refund_id=gateway_refund_id).exclude(id=refund.id).exists():
        raise DuplicateGatewayRefundError(
            f"Gateway refund {gateway_refund_id} is already recorded on another refund"
        )


def _apply_processed_refund(*, refund_id, gateway_refund_id: str, user=None) -> tuple[Refund, bool]:
    """
    Apply a succeeded gateway refund: one local transaction keyed by the
    gateway refund id. Returns (refund, applied_now).
    """
    with transaction.atomic():
        refund = _lock_refund(refund_id)

        if refund.status == RefundStatus.PROCESSED:
            if refund.gateway_refund_id == gateway_refund_id:
                return refund, False
            raise InvalidRefundStateError("Refund has already been processed")
        if refund.status != RefundStatus.REQUESTED:
            raise InvalidRefundStateError(f"Refund is {refund.status}; it can no longer be processed")

        _ensure_gateway_id_free(refund, gateway_refund_id)

        order = lock_order(refund.order_id)
        before = status_snapshot(order)

        refund.status = RefundStatus.PROCESSED
        refund.gateway_refund_id = gateway_refund_id
        refund.resolved_by = _actor(user)
        refund.resolved_at = timezone.now()
        refund.save(update_fields=["status", "gateway_refund_id", "resolved_by", "resolved_at"])

        for item in refund.items.select_related("order_item").filter(restock=True):
            if item.order_item.sku_id:
                restock_for_refund(
                    sku_id=item.order_item.sku_id,
                    quantity=item.quantity,
                    refund=refund,
                    user=_actor(user),
                )

        order.payment_status = payment_status_after_refunds(order)
        order.save(update_fields=["payment_status", "updated_at"])

        record_order_history(
            order,
            action=OrderHistory.Action.REFUND_APPLIED,
            before=before,
            user=_actor(user),
            note=f"Refund {refund.id} ({refund.amount})",
        )
        _record_refund_history(refund, action=RefundHistory.Action.PROCESSED, user=user)

    return refund, True


def _record_pending_gateway_refund(*, refund_id, gateway_refund_id: str, user=None) -> tuple[Refund, bool]:
    """The gateway accepted the refund but has not settled it: bind the id, stay REQUESTED."""
    with transaction.atomic():
        refund = _lock_refund(refund_id)
        if refund.status != RefundStatus.REQUESTED:
            raise InvalidRefundStateError(f"Refund is {refund.status}; it is no longer pending")
        if refund.gateway_refund_id == gateway_refund_id:
            return refund, False

        _ensure_gateway_id_free(refund, gateway_refund_id)

        refund.gateway_refund_id = gateway_refund_id
        refund.processing_started_at = refund.processing_started_at or timezone.now()
        refund.save(update_fields=["gateway_refund_id", "processing_started_at"])
        _record_refund_history(
            refund,
            action=RefundHistory.Action.GATEWAY_PENDING,
            user=user,
            note=f"Gateway refund {gateway_refund_id} pending",
        )

    return refund, True


def _close_failed_gateway_refund(*, refund_id, gateway_refund, user=None) -> tuple[Refund, bool]:
    """
    The gateway accepted the refund, then failed it: no money moved.

    The refund is closed as CANCELLED (its quantities become refundable again)
    instead of being reopened, so a retry cannot replay the same gateway
    refund. Staff create a new refund to try again.
    """
    with transaction.atomic():
        refund = _lock_refund(refund_id)
        if refund.status == RefundStatus.PROCESSED:
            logger.error(
                "Gateway reports a failure for an already processed refund",
                extra={"refund_id": str(refund.id), "gateway_refund_id": gateway_refund.id},
            )
            raise InvalidRefundStateError("Refund has already been processed")
        if refund.status != RefundStatus.REQUESTED:
            return refund, False

        _ensure_gateway_id_free(refund, gateway_refund.id)

        refund.status = RefundStatus.CANCELLED
        refund.gateway_refund_id = gateway_refund.id
        refund.resolved_at = timezone.now()
        refund.save(update_fields=["status", "gateway_refund_id", "resolved_at"])
        _record_refund_history(
            refund,
            action=RefundHistory.Action.GATEWAY_FAILED,
            user=user,
            note=f"Gateway refund {gateway_refund.id} {gateway_refund.status}: "
            f"{gateway_refund.failure_reason or 'no reason given'}",
        )

    return refund, True


def _settle_gateway_refund(*, refund_id, gateway_refund, user=None) -> ActionResult:
    """
    Apply what the gateway reports for a refund:
    - succeeded -> PROCESSED (restock + payment status), exactly once
    - failed / canceled -> CANCELLED, no money moved
    - anything else (pending, requires_action) -> stays REQUESTED and in flight
    Raises OrderServiceError when the local state cannot accept the outcome.
    """
    if gateway_refund.succeeded:
        refund, changed = _apply_processed_refund(
            refund_id=refund_id, gateway_refund_id=gateway_refund.id, user=user
        )
        return ActionResult.success("Refund processed", changed=changed, **_refund_payload(refund))

    if gateway_refund.failed:
        refund, changed = _close_failed_gateway_refund(
            refund_id=refund_id, gateway_refund=gateway_refund, user=user
        )
        return ActionResult.gateway_error(
            f"Stripe refund {gateway_refund.status}: "
            f"{gateway_refund.failure_reason or gateway_refund.status}",
            changed=changed,
            **_refund_payload(refund),
        )

    refund, changed = _record_pending_gateway_refund(
        refund_id=refund_id, gateway_refund_id=gateway_refund.id, user=user
    )
    return ActionResult.success(
        "Refund submitted; awaiting gateway confirmation",
        changed=changed,
        **_refund_payload(refund),
    )


def _handle_gateway_failure(*, refund: Refund, exc, bound: bool, user=None) -> ActionResult:
    """
    Step 2 failed. When the gateway provably declined, the in-flight marker is
    released and the refund is a plain REQUESTED refund again. When the outcome
    is unknown (or a gateway refund already exists) the marker stays: money may
    have moved, so the refund cannot be closed until a retry settles it.
    """
    keep_marker = bound or exc.outcome_unknown
    logger.warning(
        "Gateway refund failed",
        extra={
            "refund_id": str(refund.id),
            "order_id": str(refund.order_id),
            "error": str(exc),
            "outcome_unknown": keep_marker,
        },
    )

    with transaction.atomic():
        locked = _lock_refund(refund.id)
        if locked.status == RefundStatus.REQUESTED and not keep_marker and not locked.gateway_refund_id:
            locked.processing_started_at = None
            locked.save(update_fields=["processing_started_at"])
        _record_refund_history(
            locked,
            action=RefundHistory.Action.GATEWAY_FAILED,
            user=user,
            note=f"{exc} (outcome unknown, retry to reconcile)" if keep_marker else str(exc),
        )

    return ActionResult.gateway_error(str(exc), refund_id=str(refund.id))


def process_refund(*, refund_id, user=None) -> ActionResult:
    # Step 1: precondition check + in-flight marker (short lock, no gateway call inside)
    try:
        with transaction.atomic():
            refund = _lock_refund(refund_id)
            if refund.status != RefundStatus.REQUESTED:
                raise InvalidRefundStateError(
                    f"Refund is {refund.status}; only REQUESTED refunds can be processed"
                )
            payment_intent_id = (refund.order.payment_intent_id or "").strip()
            if not payment_intent_id:
                raise ValidationError("Order has no captured payment to refund.")
            amount = int(refund.amount)
            order_id = refund.order_id
            bound_gateway_id = refund.gateway_refund_id or ""

            # From here on the refund can no longer be rejected or cancelled.
            if refund.processing_started_at is None:
                refund.processing_started_at = timezone.now()
                refund.save(update_fields=["processing_started_at"])
    except OrderServiceError as exc:
        return exc.to_result(refund_id=str(refund_id))
    except ValidationError as exc:
        return ActionResult.validation_error(first_message(exc), refund_id=str(refund_id))

    # Step 2: gateway (bounded timeout, idempotency key, never retried here)
    try:
        if bound_gateway_id:
            gateway_refund = stripe_gateway.retrieve_refund(bound_gateway_id)
        else:
            gateway_refund = stripe_gateway.create_refund(
                payment_intent_id=payment_intent_id,
                amount=amount,
                idempotency_key=f"refund_{refund.id}",
                metadata={"refund_id": str(refund.id), "order_id": str(order_id)},
            )
    except stripe_gateway.PaymentGatewayError as exc:
        return _handle_gateway_failure(refund=refund, exc=exc, bound=bool(bound_gateway_id), user=user)

    # Step 3: apply locally, exactly once
    try:
        result = _settle_gateway_refund(refund_id=refund.id, gateway_refund=gateway_refund, user=user)
    except OrderServiceError as exc:
        logger.error(
            "Gateway refund could not be applied locally",
            extra={
                "refund_id": str(refund_id),
                "gateway_refund_id": gateway_refund.id,
                "gateway_status": gateway_refund.status,
                "error": str(exc),
            },
        )
        return exc.to_result(refund_id=str(refund_id), gateway_refund_id=gateway_refund.id)

    logger.info(
        result.message,
        extra={
            "refund_id": str(refund.id),
            "order_id": str(order_id),
            "gateway_refund_id": gateway_refund.id,
            "gateway_status": gateway_refund.status,
            "amount": amount,
        },
    )
    return result


def apply_gateway_refund_update(*, gateway_refund, user=None) -> ActionResult:
    """
    Settle a refund from a gateway notification (refund.updated and friends).

    The local refund is found by its recorded gateway id, or, when the
    notification outruns process_refund, by the refund_id metadata the
    gateway echoes back. Gateway refunds created outside this system are
    reported as NOT_FOUND.
    """
    refund_id = (
        Refund.objects.filter(gateway_refund_id=gateway_refund.id).values_list("id", flat=True).first()
        if gateway_refund.id
        else None
    )
    if refund_id is None:
        refund_id = (gateway_refund.metadata or {}).get("refund_id") or None
    if refund_id is None:
        return ActionResult.not_found(f"No refund recorded for gateway refund {gateway_refund.id}")

    try:
        result = _settle_gateway_refund(refund_id=refund_id, gateway_refund=gateway_refund, user=user)
    except OrderServiceError as exc:
        return exc.to_result(refund_id=str(refund_id), gateway_refund_id=gateway_refund.id)

    logger.info(
        "Gateway refund update applied",
        extra={
            "refund_id": str(refund_id),
            "gateway_refund_id": gateway_refund.id,
            "gateway_status": gateway_refund.status,
            "changed": result.data.get("changed"),
        },
    )
    return result


# =========================================================
# Reject / Cancel
# =========================================================
def _close_refund(*, refund_id, status: str, action: str, user=None, note: str = "") -> ActionResult:
    try:
        with transaction.atomic():
            refund = _lock_refund(refund_id)
            if refund.status != RefundStatus.REQUESTED:
                raise InvalidRefundStateError(
                    f"Refund is {refund.status}; only REQUESTED refunds can be closed"
                )
            if refund.is_in_flight:
                raise InvalidRefundStateError(
                    "Refund is being processed by the payment gateway; it can no longer be closed"
                )

            refund.status = status
            refund.resolved_by = _actor(user)
            refund.resolved_at = timezone.now()
            fields = ["status", "resolved_by", "resolved_at"]
            if status == RefundStatus.REJECTED:
                refund.rejection_reason = (note or "").strip()
                fields.append("rejection_reason")
            refund.save(update_fields=fields)

            _record_refund_history(refund, action=action, user=user, note=note)
    except OrderServiceError as exc:
        return exc.to_result(refund_id=str(refund_id))

    logger.info(
        "Refund closed",
        extra={"refund_id": str(refund.id), "status": refund.status},
    )
    return ActionResult.success(f"Refund {refund.status.lower()}", **_refund_payload(refund))


def reject_refund(*, refund_id, reason: Optional[str] = None, user=None) -> ActionResult:
    return _close_refund(
        refund_id=refund_id,
        status=RefundStatus.REJECTED,
        action=RefundHistory.Action.REJECTED,
        user=user,
        note=reason or "",
    )


def cancel_refund(*, refund_id, user=None, note: str = "") -> ActionResult:
    return _close_refund(
        refund_id=refund_id,
        status=RefundStatus.CANCELLED,
        action=RefundHistory.Action.CANCELLED,
        user=user,
        note=note,
    )
