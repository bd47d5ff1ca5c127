# products/models/product.py

import uuid

from django.core.exceptions import ValidationError
from django.db import models


class Product(models.Model):
    """
    Represents a catalog product.

    STOCK MODEL (IMPORTANT):
    - Product itself does NOT store stock or price
    - Each purchasable variant is a ProductSku
    - Stock lives on ProductSku.inventory and only moves through products/services/inventory.py
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    title = models.CharField(max_length=255, db_index=True)
    slug = models.SlugField(max_length=255, unique=True)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return self.title

    def clean(self):
        if not (self.title or "").strip():
            raise ValidationError("title is required")


class ProductSku(models.Model):
    """
    A purchasable variant of a Product.

    - price is stored in integer minor units (cents)
    - inventory is never written with read-modify-write; use F() expressions
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        related_name="skus",
    )

    sku = models.CharField(max_length=128, unique=True, db_index=True)

    color = models.CharField(max_length=64, blank=True, default="")
    material = models.CharField(max_length=64, blank=True, default="")
    size = models.CharField(max_length=32, blank=True, default="")

    price = models.PositiveIntegerField(help_text="Unit price in minor units (cents).")
    inventory = models.PositiveIntegerField(default=0)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["product", "sku"]
        indexes = [
            models.Index(fields=["sku"], name="products_pr_sku_8f1c2e_idx"),
            models.Index(fields=["product", "is_active"], name="products_pr_product_3b7d41_idx"),
        ]

    def __str__(self):
        return f"{self.product.title} ({self.sku})"

    def clean(self):
        if self.price is None or int(self.price) <= 0:
            raise ValidationError("price must be greater than zero")

    @property
    def variant_label(self) -> str:
        parts = [p for p in (self.color, self.material, self.size) if p]
        return " / ".join(parts)
