# orders/models/order_item.py

"""
ORDER ITEM (LINE SNAPSHOT)

GUARANTEES:
- Product title and variant descriptors are captured at order time
- Never re-read from the live catalog afterwards
- Immutable once created; removed only by cascading order deletion
"""

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from products.models import ProductSku


class OrderItem(models.Model):
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )

    sku = models.ForeignKey(
        ProductSku,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="order_items",
    )

    # Snapshot (immutable)
    product_title = models.CharField(max_length=255)
    sku_code = models.CharField(max_length=128, blank=True, default="")
    sku_color = models.CharField(max_length=64, blank=True, default="")
    sku_material = models.CharField(max_length=64, blank=True, default="")
    sku_size = models.CharField(max_length=32, blank=True, default="")

    unit_price = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["order"], name="orders_orde_order_i_7c3b15_idx"),
            models.Index(fields=["sku"], name="orders_orde_sku_id_5f0a68_idx"),
        ]

    @property
    def line_total(self) -> int:
        return int(self.unit_price) * int(self.quantity)

    def clean(self):
        if self.quantity is None or int(self.quantity) <= 0:
            raise ValidationError("quantity must be >= 1")
        if self.unit_price is None or int(self.unit_price) <= 0:
            raise ValidationError("unit_price must be > 0")

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise RuntimeError("OrderItem snapshots are immutable")
        self.full_clean()
        return super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.product_title} x{self.quantity}"
