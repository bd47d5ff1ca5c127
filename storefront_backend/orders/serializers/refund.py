# orders/serializers/refund.py

from rest_framework import serializers

from orders.models import Refund, RefundHistory, RefundItem


class RefundItemSerializer(serializers.ModelSerializer):
    product_title = serializers.CharField(source="order_item.product_title", read_only=True)
    unit_price = serializers.IntegerField(source="order_item.unit_price", read_only=True)

    class Meta:
        model = RefundItem
        fields = ["id", "order_item", "product_title", "unit_price", "quantity", "amount", "restock"]
        read_only_fields = fields


class RefundHistorySerializer(serializers.ModelSerializer):
    actor_email = serializers.EmailField(source="actor.email", read_only=True, default=None)

    class Meta:
        model = RefundHistory
        fields = ["id", "action", "actor_email", "note", "created_at"]
        read_only_fields = fields


class RefundSerializer(serializers.ModelSerializer):
    order_number = serializers.CharField(source="order.order_number", read_only=True)
    items = RefundItemSerializer(many=True, read_only=True)
    history = RefundHistorySerializer(many=True, read_only=True)

    class Meta:
        model = Refund
        fields = [
            "id",
            "order",
            "order_number",
            "amount",
            "currency",
            "reason",
            "note",
            "status",
            "gateway_refund_id",
            "processing_started_at",
            "rejection_reason",
            "created_at",
            "resolved_at",
            "items",
            "history",
        ]
        read_only_fields = fields
