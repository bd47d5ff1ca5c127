# orders/serializers/order.py

from rest_framework import serializers

from orders.models import Order, OrderHistory, OrderItem


class OrderItemSerializer(serializers.ModelSerializer):
    line_total = serializers.IntegerField(read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "sku",
            "product_title",
            "sku_code",
            "sku_color",
            "sku_material",
            "sku_size",
            "unit_price",
            "quantity",
            "line_total",
        ]
        read_only_fields = fields


class OrderHistorySerializer(serializers.ModelSerializer):
    actor_email = serializers.EmailField(source="actor.email", read_only=True, default=None)

    class Meta:
        model = OrderHistory
        fields = [
            "id",
            "action",
            "actor_email",
            "note",
            "from_status",
            "to_status",
            "from_payment_status",
            "to_payment_status",
            "from_fulfillment_status",
            "to_fulfillment_status",
            "created_at",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """
    Read serializer for orders.

    `permissions` is the live permission vector, so the console can enable or
    disable actions without re-implementing the rules.
    """

    items = OrderItemSerializer(many=True, read_only=True)
    permissions = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "customer_email",
            "customer_name",
            "subtotal",
            "shipping_cost",
            "total",
            "currency",
            "status",
            "payment_status",
            "fulfillment_status",
            "shipping_address_line1",
            "shipping_address_line2",
            "shipping_city",
            "shipping_postal_code",
            "shipping_country",
            "shipping_zone",
            "shipping_department",
            "carrier",
            "tracking_number",
            "tracking_url",
            "invoice_number",
            "invoice_status",
            "invoice_generated_at",
            "created_at",
            "paid_at",
            "shipped_at",
            "delivered_at",
            "cancelled_at",
            "returned_at",
            "items",
            "permissions",
        ]
        read_only_fields = fields

    def get_permissions(self, obj) -> dict:
        return obj.permissions.as_dict()


class OrderDetailSerializer(OrderSerializer):
    history = OrderHistorySerializer(many=True, read_only=True)

    class Meta(OrderSerializer.Meta):
        fields = OrderSerializer.Meta.fields + ["checkout_session_id", "payment_intent_id", "history"]
        read_only_fields = fields


class CustomerOrderSerializer(serializers.ModelSerializer):
    """What an order's owner may see (no gateway references, no audit trail)."""

    items = OrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "total",
            "currency",
            "status",
            "payment_status",
            "fulfillment_status",
            "carrier",
            "tracking_number",
            "tracking_url",
            "created_at",
            "delivered_at",
            "items",
        ]
        read_only_fields = fields
