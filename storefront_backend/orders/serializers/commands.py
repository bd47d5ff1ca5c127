# orders/serializers/commands.py

"""
COMMAND SERIALIZERS

Validate request shapes for order/refund actions.
They do NOT touch the database; business rules live in orders/services.
"""

from rest_framework import serializers

from orders.models import RefundReason
from orders.services.carrier_detection import CARRIER_CHOICES


class TransitionNoteSerializer(serializers.Serializer):
    note = serializers.CharField(required=False, allow_blank=True, max_length=1000, default="")


class TrackingCommandSerializer(TransitionNoteSerializer):
    tracking_number = serializers.CharField(max_length=64)
    carrier = serializers.ChoiceField(choices=CARRIER_CHOICES, required=False, allow_blank=True)


class RefundLineSerializer(serializers.Serializer):
    order_item_id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1)
    restock = serializers.BooleanField(required=False, allow_null=True, default=None)


class RefundCreateCommandSerializer(serializers.Serializer):
    items = RefundLineSerializer(many=True, allow_empty=False)
    reason = serializers.ChoiceField(
        choices=RefundReason.choices, required=False, default=RefundReason.CUSTOMER_REQUEST
    )
    note = serializers.CharField(required=False, allow_blank=True, max_length=2000, default="")


class RefundRejectCommandSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, max_length=2000, default="")


class ReturnRequestCommandSerializer(serializers.Serializer):
    reason = serializers.ChoiceField(
        choices=[
            (RefundReason.CUSTOMER_REQUEST, RefundReason.CUSTOMER_REQUEST.label),
            (RefundReason.DEFECTIVE, RefundReason.DEFECTIVE.label),
            (RefundReason.WRONG_ITEM, RefundReason.WRONG_ITEM.label),
        ],
        required=False,
        default=RefundReason.CUSTOMER_REQUEST,
    )
    note = serializers.CharField(required=False, allow_blank=True, max_length=2000, default="")
