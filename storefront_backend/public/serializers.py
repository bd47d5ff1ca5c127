# public/serializers.py

"""
PUBLIC SERIALIZERS (ONLINE STORE)

Transport-layer contracts for the public checkout endpoints.
They validate request/response shapes, not business rules.
"""

from __future__ import annotations

from rest_framework import serializers


class PublicCartLineSerializer(serializers.Serializer):
    sku_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)


class PublicShippingAddressSerializer(serializers.Serializer):
    line1 = serializers.CharField(max_length=255)
    line2 = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    city = serializers.CharField(max_length=120)
    postal_code = serializers.CharField(max_length=20)
    country = serializers.CharField(max_length=2, min_length=2)


class PublicCheckoutSerializer(serializers.Serializer):
    items = PublicCartLineSerializer(many=True, allow_empty=False)
    customer_email = serializers.EmailField()
    customer_name = serializers.CharField(required=False, allow_blank=True, max_length=255)
    shipping_address = PublicShippingAddressSerializer()


class PublicCheckoutResponseSerializer(serializers.Serializer):
    order_id = serializers.UUIDField()
    order_number = serializers.CharField()
    total = serializers.IntegerField()
    currency = serializers.CharField()
    checkout_url = serializers.CharField()


class PublicWebhookAckSerializer(serializers.Serializer):
    ok = serializers.BooleanField()
    detail = serializers.CharField(required=False, allow_blank=True)
