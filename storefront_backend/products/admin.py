# products/admin.py
"""
=====================================================
PATH: products/admin.py
=====================================================

Admin rules (ledger-safe inventory):

- Products and SKUs are edited here (title, variants, price).
- ProductSku.inventory is read-only: stock only moves through
  products/services/inventory.py so every change has a StockMovement row.
- StockMovement rows are immutable and shown read-only.
"""

from __future__ import annotations

from django.contrib import admin

from products.models import Product, ProductSku, StockMovement


class ProductSkuInline(admin.TabularInline):
    model = ProductSku
    extra = 0
    fields = ("sku", "color", "material", "size", "price", "inventory", "is_active")
    readonly_fields = ("inventory",)


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("title", "slug", "is_active", "created_at")
    list_filter = ("is_active",)
    search_fields = ("title", "slug", "skus__sku")
    prepopulated_fields = {"slug": ("title",)}
    inlines = [ProductSkuInline]


@admin.register(ProductSku)
class ProductSkuAdmin(admin.ModelAdmin):
    list_display = ("sku", "product", "variant_label", "price", "inventory", "is_active")
    list_filter = ("is_active",)
    search_fields = ("sku", "product__title")
    readonly_fields = ("inventory", "created_at", "updated_at")


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = ("created_at", "sku", "reason", "movement_type", "quantity", "order")
    list_filter = ("reason", "movement_type")
    search_fields = ("sku__sku", "order__order_number")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
