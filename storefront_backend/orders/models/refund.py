# orders/models/refund.py

"""
======================================================
PATH: orders/models/refund.py
======================================================
REFUND REQUEST

Lifecycle:
    REQUESTED -> PROCESSED | REJECTED | CANCELLED

Design guarantees:
- Created once in REQUESTED state (no money moves at creation)
- Mutated by exactly ONE terminal transition, then frozen
- While REQUESTED, only the in-flight fields (processing_started_at,
  gateway_refund_id) may change: they mark a gateway call that may have
  moved money, and such a refund can no longer be rejected or cancelled
- gateway_refund_id is unique: a gateway refund can only ever be applied once
- Never deleted (append-only history of refund attempts per order)
"""

from __future__ import annotations

import uuid

from django.conf import settings
from django.db import models

from .status import RefundReason, RefundStatus

User = settings.AUTH_USER_MODEL

IN_FLIGHT_FIELDS = {"processing_started_at", "gateway_refund_id"}


class Refund(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="refunds",
    )

    amount = models.PositiveIntegerField(help_text="Refund amount in minor units.")
    currency = models.CharField(max_length=3, default="eur")

    reason = models.CharField(
        max_length=32,
        choices=RefundReason.choices,
        default=RefundReason.CUSTOMER_REQUEST,
    )
    note = models.TextField(blank=True, default="")

    status = models.CharField(
        max_length=16,
        choices=RefundStatus.choices,
        default=RefundStatus.REQUESTED,
    )

    gateway_refund_id = models.CharField(
        max_length=255,
        unique=True,
        null=True,
        blank=True,
        help_text="Gateway refund identifier (set once the gateway accepted the refund).",
    )
    processing_started_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Set when a gateway refund call starts; cleared only if the gateway declined.",
    )

    rejection_reason = models.TextField(blank=True, default="")

    requested_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="requested_refunds",
    )
    resolved_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="resolved_refunds",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    resolved_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["order", "status"], name="orders_refu_order_i_8a4e31_idx"),
            models.Index(fields=["status", "created_at"], name="orders_refu_status_2b7f94_idx"),
        ]

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._persisted_status = getattr(instance, "status", None)
        return instance

    @property
    def is_in_flight(self) -> bool:
        return self.status == RefundStatus.REQUESTED and bool(
            self.processing_started_at or self.gateway_refund_id
        )

    @property
    def is_terminal(self) -> bool:
        return self.status != RefundStatus.REQUESTED

    def save(self, *args, **kwargs):
        if not self._state.adding:
            persisted = getattr(self, "_persisted_status", None)
            if persisted != RefundStatus.REQUESTED:
                raise RuntimeError("Resolved refunds are immutable")
            if self.status == RefundStatus.REQUESTED:
                update_fields = kwargs.get("update_fields")
                if not update_fields or not set(update_fields) <= IN_FLIGHT_FIELDS:
                    raise RuntimeError("Refund updates must be a terminal transition")
        elif self.status != RefundStatus.REQUESTED:
            raise RuntimeError("Refunds must be created in REQUESTED state")

        super().save(*args, **kwargs)
        self._persisted_status = self.status

    def delete(self, *args, **kwargs):
        raise RuntimeError("Refunds cannot be deleted")

    def __str__(self):
        return f"Refund {self.id} | {self.amount} | {self.status}"


class RefundItem(models.Model):
    """
    Immutable per-line breakdown of a Refund.
    quantity * order_item.unit_price == amount (server computed).
    """

    refund = models.ForeignKey(
        Refund,
        on_delete=models.CASCADE,
        related_name="items",
    )

    order_item = models.ForeignKey(
        "orders.OrderItem",
        on_delete=models.PROTECT,
        related_name="refund_items",
    )

    quantity = models.PositiveIntegerField()
    amount = models.PositiveIntegerField()
    restock = models.BooleanField(default=False)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["refund", "order_item"],
                name="uniq_refund_item_per_order_item",
            ),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise RuntimeError("RefundItem records are immutable")
        return super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.order_item_id} x{self.quantity} (restock={self.restock})"
