# products/models/stock_movement.py

"""
INVENTORY LEDGER

Immutable inventory ledger entry, written next to every ProductSku.inventory change.

GUARANTEES:
- Append-only (no updates, no deletes)
- Created ONCE, never edited
- Movement direction validated against reason
- Order-linked movements must reference an order
"""

import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from .product import ProductSku


class StockMovement(models.Model):
    class MovementType(models.TextChoices):
        IN = "IN", "Stock In"
        OUT = "OUT", "Stock Out"

    class Reason(models.TextChoices):
        RESERVATION = "RESERVATION", "Checkout Reservation"
        RELEASE = "RELEASE", "Reservation Released"
        REFUND_RESTOCK = "REFUND_RESTOCK", "Refund Restock"
        ADJUSTMENT = "ADJUSTMENT", "Manual Adjustment"

    REASON_TO_MOVEMENT = {
        Reason.RESERVATION: MovementType.OUT,
        Reason.RELEASE: MovementType.IN,
        Reason.REFUND_RESTOCK: MovementType.IN,
        Reason.ADJUSTMENT: None,
    }

    ORDER_REASONS = {Reason.RESERVATION, Reason.RELEASE, Reason.REFUND_RESTOCK}

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    sku = models.ForeignKey(
        ProductSku, on_delete=models.CASCADE, related_name="stock_movements"
    )

    movement_type = models.CharField(max_length=3, choices=MovementType.choices)
    reason = models.CharField(max_length=20, choices=Reason.choices)

    quantity = models.PositiveIntegerField()

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_movements",
    )
    refund = models.ForeignKey(
        "orders.Refund",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_movements",
    )

    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_movements",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["reason"], name="products_st_reason_5d2a90_idx"),
            models.Index(fields=["sku", "created_at"], name="products_st_sku_id_7e41c3_idx"),
            models.Index(fields=["order", "created_at"], name="products_st_order_i_2f9b6d_idx"),
        ]

    def clean(self):
        if not self.quantity or self.quantity <= 0:
            raise ValidationError("quantity must be greater than zero")

        expected_type = self.REASON_TO_MOVEMENT.get(self.reason)
        if expected_type and self.movement_type != expected_type:
            raise ValidationError(
                f"{self.reason} requires movement_type={expected_type}"
            )

        if self.reason in self.ORDER_REASONS and not self.order_id:
            raise ValidationError(f"{self.reason} must reference an order")

        if self.reason == self.Reason.REFUND_RESTOCK and not self.refund_id:
            raise ValidationError("REFUND_RESTOCK must reference a refund")

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("StockMovement records are immutable")
        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError(
            "StockMovement records are immutable and cannot be deleted"
        )

    def __str__(self):
        return f"{self.sku_id} | {self.reason} | {self.quantity}"
