# products/services/inventory.py

"""
======================================================
PATH: products/services/inventory.py
======================================================
INVENTORY CORE SERVICES

Purpose:
- Reserve stock at checkout initiation (conditional atomic decrement).
- Release a reservation when an unpaid order is cancelled.
- Restock quantities returned by a processed refund.

Rules:
- ProductSku.inventory is only changed with F() expressions (never read-modify-write).
- Every change writes one StockMovement ledger row.
- Callers own the transaction: these helpers must run inside transaction.atomic().
"""

from __future__ import annotations

import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F

from products.models import ProductSku, StockMovement

logger = logging.getLogger(__name__)


class InsufficientStockError(ValidationError):
    """Raised when a reservation would drive inventory below zero."""


def _require_positive_int(value, *, field_name: str) -> int:
    if value is None or value == "" or isinstance(value, bool):
        raise ValidationError(f"{field_name} must be an integer")
    try:
        v = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")
    if v <= 0:
        raise ValidationError(f"{field_name} must be greater than zero")
    return v


def _require_atomic() -> None:
    if not transaction.get_connection().in_atomic_block:
        raise RuntimeError("Inventory changes must run inside transaction.atomic()")


def reserve_stock(*, sku_id, quantity, order, user=None) -> None:
    """
    Decrement inventory only when enough units are available.

    The filter + update runs as a single UPDATE statement, so two concurrent
    checkouts cannot both take the last unit.
    """
    _require_atomic()
    qty = _require_positive_int(quantity, field_name="quantity")

    updated = ProductSku.objects.filter(
        id=sku_id, is_active=True, inventory__gte=qty
    ).update(inventory=F("inventory") - qty)

    if updated != 1:
        raise InsufficientStockError(f"Insufficient stock for SKU {sku_id}")

    StockMovement.objects.create(
        sku_id=sku_id,
        movement_type=StockMovement.MovementType.OUT,
        reason=StockMovement.Reason.RESERVATION,
        quantity=qty,
        order=order,
        performed_by=user,
    )


def release_stock(*, sku_id, quantity, order, user=None) -> None:
    """Give back units reserved by an order that will never be paid."""
    _require_atomic()
    qty = _require_positive_int(quantity, field_name="quantity")

    ProductSku.objects.filter(id=sku_id).update(inventory=F("inventory") + qty)

    StockMovement.objects.create(
        sku_id=sku_id,
        movement_type=StockMovement.MovementType.IN,
        reason=StockMovement.Reason.RELEASE,
        quantity=qty,
        order=order,
        performed_by=user,
    )


def restock_for_refund(*, sku_id, quantity, refund, user=None) -> None:
    """
    Increment inventory for one restocked refund line.

    Called exactly once per refund item, inside the transaction that flips the
    refund to PROCESSED.
    """
    _require_atomic()
    qty = _require_positive_int(quantity, field_name="quantity")

    updated = ProductSku.objects.filter(id=sku_id).update(inventory=F("inventory") + qty)
    if updated != 1:
        # SKU removed from the catalog; money still moved, so do not fail the refund.
        logger.warning(
            "Restock skipped: SKU no longer exists",
            extra={"sku_id": str(sku_id), "refund_id": str(refund.id)},
        )
        return

    StockMovement.objects.create(
        sku_id=sku_id,
        movement_type=StockMovement.MovementType.IN,
        reason=StockMovement.Reason.REFUND_RESTOCK,
        quantity=qty,
        order_id=refund.order_id,
        refund=refund,
        performed_by=user,
    )
