# orders/models/order.py

import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from .status import (
    CAPTURED_PAYMENT_STATUSES,
    FulfillmentStatus,
    OrderStatus,
    PaymentStatus,
)


class Order(models.Model):
    """
    Storefront order (root aggregate).

    Key rules:
    - Created at checkout initiation as PENDING / PENDING / UNFULFILLED
    - Becomes PAID only from gateway truth (checkout return or webhook)
    - Every later transition goes through orders/services/order_lifecycle.py,
      which re-checks the permission predicate under a row lock
    - Money is stored in integer minor units (cents)
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order_number = models.CharField(
        max_length=64,
        unique=True,
        blank=True,
        help_text="System-generated public order number",
    )

    # Customer identity
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders",
    )
    customer_email = models.EmailField()
    customer_name = models.CharField(max_length=120, blank=True, default="")

    # Money (server authoritative, minor units)
    subtotal = models.PositiveIntegerField(default=0)
    shipping_cost = models.PositiveIntegerField(default=0)
    total = models.PositiveIntegerField(default=0)
    currency = models.CharField(max_length=3, default="eur")

    # Status dimensions
    status = models.CharField(
        max_length=16, choices=OrderStatus.choices, default=OrderStatus.PENDING
    )
    payment_status = models.CharField(
        max_length=24, choices=PaymentStatus.choices, default=PaymentStatus.PENDING
    )
    fulfillment_status = models.CharField(
        max_length=16,
        choices=FulfillmentStatus.choices,
        default=FulfillmentStatus.UNFULFILLED,
    )

    # Shipping address + zone
    shipping_address_line1 = models.CharField(max_length=255, blank=True, default="")
    shipping_address_line2 = models.CharField(max_length=255, blank=True, default="")
    shipping_city = models.CharField(max_length=120, blank=True, default="")
    shipping_postal_code = models.CharField(max_length=10, blank=True, default="")
    shipping_country = models.CharField(max_length=2, default="FR")
    shipping_zone = models.CharField(max_length=32, blank=True, default="")
    shipping_department = models.CharField(max_length=3, blank=True, default="")

    # Tracking
    carrier = models.CharField(max_length=32, blank=True, default="")
    tracking_number = models.CharField(max_length=64, blank=True, default="")
    tracking_url = models.URLField(max_length=500, blank=True, default="")

    # Gateway references
    checkout_session_id = models.CharField(
        max_length=255, blank=True, default="", db_index=True
    )
    payment_intent_id = models.CharField(max_length=255, blank=True, default="")

    # Invoice metadata
    invoice_number = models.CharField(max_length=64, blank=True, default="")
    invoice_status = models.CharField(max_length=32, blank=True, default="")
    invoice_generated_at = models.DateTimeField(null=True, blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    shipped_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    returned_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["created_at"], name="orders_orde_created_4c1a7e_idx"),
            models.Index(fields=["status"], name="orders_orde_status_9b2f13_idx"),
            models.Index(fields=["payment_status"], name="orders_orde_payment_6e8d20_idx"),
            models.Index(fields=["order_number"], name="orders_orde_order_n_1a5c77_idx"),
            models.Index(fields=["user", "created_at"], name="orders_orde_user_id_3d9e42_idx"),
        ]

    def clean(self):
        if (
            self.fulfillment_status != FulfillmentStatus.UNFULFILLED
            and self.payment_status not in CAPTURED_PAYMENT_STATUSES
        ):
            raise ValidationError(
                "Fulfillment cannot progress before the order is paid"
            )

    def save(self, *args, **kwargs):
        if not self.order_number:
            prefix = timezone.now().strftime("ORD%Y%m%d")
            self.order_number = f"{prefix}-{uuid.uuid4().hex[:8].upper()}"

        super().save(*args, **kwargs)

    @property
    def has_tracking_number(self) -> bool:
        return bool((self.tracking_number or "").strip())

    @property
    def permissions(self):
        from orders.services.order_permissions import permissions_for

        return permissions_for(self)

    def __str__(self):
        return f"{self.order_number} | {self.total} | {self.status}/{self.payment_status}"
