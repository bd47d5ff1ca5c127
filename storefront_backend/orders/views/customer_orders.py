# orders/views/customer_orders.py

"""
CUSTOMER ORDER API

Authenticated customers see only their own orders and may request a return
on a delivered one.
"""

from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated

from orders.models import Order
from orders.serializers import CustomerOrderSerializer, ReturnRequestCommandSerializer
from orders.services.return_request import request_return
from orders.views.errors import result_response


class CustomerOrderViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = CustomerOrderSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        return (
            Order.objects.filter(user=self.request.user)
            .prefetch_related("items")
            .order_by("-created_at")
        )

    @action(detail=True, methods=["post"], url_path="return-request")
    def return_request(self, request, pk=None):
        command = ReturnRequestCommandSerializer(data=request.data)
        command.is_valid(raise_exception=True)
        result = request_return(
            order_id=pk,
            user=request.user,
            reason=command.validated_data["reason"],
            note=command.validated_data["note"],
        )
        return result_response(result, success_status=status.HTTP_201_CREATED)
