# orders/admin.py

"""
Orders admin is a read-mostly console.

State changes go through orders/services (the API actions), so the admin
never edits statuses, amounts or snapshot lines directly.
"""

from django.contrib import admin

from orders.models import Order, OrderHistory, OrderItem, Refund, RefundHistory, RefundItem


class _ReadOnlyInline(admin.TabularInline):
    extra = 0
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False


# ======================================================
# ORDER ADMIN
# ======================================================


class OrderItemInline(_ReadOnlyInline):
    model = OrderItem
    fields = ("product_title", "sku_code", "sku_color", "sku_size", "unit_price", "quantity")
    readonly_fields = fields


class OrderHistoryInline(_ReadOnlyInline):
    model = OrderHistory
    fk_name = "order"
    fields = ("created_at", "action", "from_status", "to_status", "actor", "note")
    readonly_fields = fields


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = (
        "order_number",
        "customer_email",
        "status",
        "payment_status",
        "fulfillment_status",
        "total",
        "created_at",
    )
    list_filter = ("status", "payment_status", "fulfillment_status", "shipping_zone")
    search_fields = ("order_number", "customer_email", "tracking_number", "checkout_session_id")
    readonly_fields = (
        "order_number",
        "subtotal",
        "shipping_cost",
        "total",
        "status",
        "payment_status",
        "fulfillment_status",
        "checkout_session_id",
        "payment_intent_id",
        "paid_at",
        "shipped_at",
        "delivered_at",
        "cancelled_at",
        "returned_at",
        "created_at",
        "updated_at",
    )
    inlines = [OrderItemInline, OrderHistoryInline]


# ======================================================
# REFUND ADMIN
# ======================================================


class RefundItemInline(_ReadOnlyInline):
    model = RefundItem
    fields = ("order_item", "quantity", "amount", "restock")
    readonly_fields = fields


class RefundHistoryInline(_ReadOnlyInline):
    model = RefundHistory
    fk_name = "refund"
    fields = ("created_at", "action", "actor", "note")
    readonly_fields = fields


@admin.register(Refund)
class RefundAdmin(admin.ModelAdmin):
    list_display = ("order", "amount", "reason", "status", "created_at", "resolved_at")
    list_filter = ("status", "reason")
    search_fields = ("order__order_number", "gateway_refund_id")
    readonly_fields = (
        "order",
        "amount",
        "currency",
        "reason",
        "status",
        "gateway_refund_id",
        "processing_started_at",
        "rejection_reason",
        "requested_by",
        "resolved_by",
        "created_at",
        "resolved_at",
    )
    inlines = [RefundItemInline, RefundHistoryInline]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
