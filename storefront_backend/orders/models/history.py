# orders/models/history.py

"""
AUDIT HISTORY (IMMUTABLE)

Purpose:
- One row per order transition (admin action or gateway reconciliation)
- One row per refund action (created / processed / rejected / cancelled / gateway failure)

Created once. Never updated. Never deleted.
"""

import uuid

from django.conf import settings
from django.db import models

User = settings.AUTH_USER_MODEL


class _ImmutableHistory(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    actor = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    note = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        abstract = True
        ordering = ["created_at"]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise RuntimeError(f"{type(self).__name__} records are immutable")
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise RuntimeError(f"{type(self).__name__} records cannot be deleted")


class OrderHistory(_ImmutableHistory):
    class Action(models.TextChoices):
        CREATED = "CREATED", "Created"
        PAYMENT_CONFIRMED = "PAYMENT_CONFIRMED", "Payment confirmed"
        PAYMENT_FAILED = "PAYMENT_FAILED", "Payment failed"
        PAYMENT_EXPIRED = "PAYMENT_EXPIRED", "Payment expired"
        MARKED_PAID = "MARKED_PAID", "Marked as paid"
        MARKED_PROCESSING = "MARKED_PROCESSING", "Marked as processing"
        MARKED_SHIPPED = "MARKED_SHIPPED", "Marked as shipped"
        MARKED_DELIVERED = "MARKED_DELIVERED", "Marked as delivered"
        REVERTED_TO_PROCESSING = "REVERTED_TO_PROCESSING", "Reverted to processing"
        TRACKING_UPDATED = "TRACKING_UPDATED", "Tracking updated"
        CANCELLED = "CANCELLED", "Cancelled"
        RETURNED = "RETURNED", "Returned"
        REFUND_APPLIED = "REFUND_APPLIED", "Refund applied"

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="history",
    )
    action = models.CharField(max_length=32, choices=Action.choices)

    from_status = models.CharField(max_length=16, blank=True, default="")
    to_status = models.CharField(max_length=16, blank=True, default="")
    from_payment_status = models.CharField(max_length=24, blank=True, default="")
    to_payment_status = models.CharField(max_length=24, blank=True, default="")
    from_fulfillment_status = models.CharField(max_length=16, blank=True, default="")
    to_fulfillment_status = models.CharField(max_length=16, blank=True, default="")

    class Meta(_ImmutableHistory.Meta):
        indexes = [models.Index(fields=["order", "created_at"], name="orders_orde_order_i_4e6a02_idx")]

    def __str__(self):
        return f"{self.order_id} | {self.action}"


class RefundHistory(_ImmutableHistory):
    class Action(models.TextChoices):
        CREATED = "CREATED", "Created"
        PROCESSED = "PROCESSED", "Processed"
        REJECTED = "REJECTED", "Rejected"
        CANCELLED = "CANCELLED", "Cancelled"
        GATEWAY_PENDING = "GATEWAY_PENDING", "Gateway pending"
        GATEWAY_FAILED = "GATEWAY_FAILED", "Gateway failed"

    refund = models.ForeignKey(
        "orders.Refund",
        on_delete=models.CASCADE,
        related_name="history",
    )
    action = models.CharField(max_length=16, choices=Action.choices)

    class Meta(_ImmutableHistory.Meta):
        indexes = [models.Index(fields=["refund", "created_at"], name="orders_refu_refund__9d1c58_idx")]

    def __str__(self):
        return f"{self.refund_id} | {self.action}"
