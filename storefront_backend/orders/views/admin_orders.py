# orders/views/admin_orders.py

"""
ADMIN ORDER API

- list / retrieve: orders.view
- transitions + tracking + cancel: orders.manage
- refunds (create): refunds.create
- refund summary: refunds.create or refunds.process

Every action delegates to orders/services; the view only validates the
request shape and maps the ActionResult to HTTP.
"""

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from orders.models import Order
from orders.serializers import (
    OrderDetailSerializer,
    OrderSerializer,
    RefundCreateCommandSerializer,
    TrackingCommandSerializer,
    TransitionNoteSerializer,
)
from orders.services import order_lifecycle, refund_orchestrator
from orders.services.refund_calculation import refund_summary
from orders.views.errors import result_response
from permissions.roles import (
    CAP_ORDERS_MANAGE,
    CAP_ORDERS_VIEW,
    CAP_REFUNDS_CREATE,
    CAP_REFUNDS_PROCESS,
    HasAnyCapability,
    HasCapability,
)

_SIMPLE_TRANSITIONS = {
    "mark_processing": order_lifecycle.mark_as_processing,
    "mark_paid": order_lifecycle.mark_as_paid,
    "mark_delivered": order_lifecycle.mark_as_delivered,
    "revert_to_processing": order_lifecycle.revert_to_processing,
    "cancel": order_lifecycle.cancel_order,
    "mark_returned": order_lifecycle.mark_as_returned,
}

_TRANSITION_RESPONSES = {
    200: OpenApiResponse(description="Transition applied"),
    400: OpenApiResponse(description="Validation error"),
    404: OpenApiResponse(description="Order not found"),
    409: OpenApiResponse(description="Transition not allowed in current state"),
}


class OrderAdminViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    queryset = Order.objects.prefetch_related("items").order_by("-created_at")
    serializer_class = OrderSerializer
    permission_classes = [IsAuthenticated, HasCapability]
    filterset_fields = ["status", "payment_status", "fulfillment_status", "order_number"]

    required_capability = CAP_ORDERS_VIEW
    required_any_capabilities = {CAP_REFUNDS_CREATE, CAP_REFUNDS_PROCESS}

    def get_permissions(self):
        if self.action == "refunds_summary":
            return [IsAuthenticated(), HasAnyCapability()]
        if self.action == "create_refund":
            self.required_capability = CAP_REFUNDS_CREATE
        elif self.action in _SIMPLE_TRANSITIONS or self.action in {"mark_shipped", "tracking"}:
            self.required_capability = CAP_ORDERS_MANAGE
        else:
            self.required_capability = CAP_ORDERS_VIEW
        return [IsAuthenticated(), HasCapability()]

    def get_queryset(self):
        qs = super().get_queryset()
        if self.action == "retrieve":
            qs = qs.prefetch_related("history", "history__actor")
        return qs

    def get_serializer_class(self):
        if self.action == "retrieve":
            return OrderDetailSerializer
        return OrderSerializer

    def _simple_transition(self, request, pk):
        command = TransitionNoteSerializer(data=request.data)
        command.is_valid(raise_exception=True)
        service = _SIMPLE_TRANSITIONS[self.action]
        result = service(order_id=pk, user=request.user, note=command.validated_data["note"])
        return result_response(result)

    # --------------------------------------------------
    # STATUS TRANSITIONS
    # --------------------------------------------------
    @extend_schema(request=TransitionNoteSerializer, responses=_TRANSITION_RESPONSES)
    @action(detail=True, methods=["post"], url_path="mark-processing")
    def mark_processing(self, request, pk=None):
        return self._simple_transition(request, pk)

    @extend_schema(request=TransitionNoteSerializer, responses=_TRANSITION_RESPONSES)
    @action(detail=True, methods=["post"], url_path="mark-paid")
    def mark_paid(self, request, pk=None):
        return self._simple_transition(request, pk)

    @extend_schema(request=TrackingCommandSerializer, responses=_TRANSITION_RESPONSES)
    @action(detail=True, methods=["post"], url_path="mark-shipped")
    def mark_shipped(self, request, pk=None):
        command = TrackingCommandSerializer(data=request.data)
        command.is_valid(raise_exception=True)
        data = command.validated_data
        result = order_lifecycle.mark_as_shipped(
            order_id=pk,
            tracking_number=data["tracking_number"],
            carrier=data.get("carrier") or None,
            user=request.user,
            note=data["note"],
        )
        return result_response(result)

    @extend_schema(request=TransitionNoteSerializer, responses=_TRANSITION_RESPONSES)
    @action(detail=True, methods=["post"], url_path="mark-delivered")
    def mark_delivered(self, request, pk=None):
        return self._simple_transition(request, pk)

    @extend_schema(request=TransitionNoteSerializer, responses=_TRANSITION_RESPONSES)
    @action(detail=True, methods=["post"], url_path="revert-to-processing")
    def revert_to_processing(self, request, pk=None):
        return self._simple_transition(request, pk)

    @extend_schema(request=TrackingCommandSerializer, responses=_TRANSITION_RESPONSES)
    @action(detail=True, methods=["post"], url_path="tracking")
    def tracking(self, request, pk=None):
        command = TrackingCommandSerializer(data=request.data)
        command.is_valid(raise_exception=True)
        data = command.validated_data
        result = order_lifecycle.update_tracking(
            order_id=pk,
            tracking_number=data["tracking_number"],
            carrier=data.get("carrier") or None,
            user=request.user,
            note=data["note"],
        )
        return result_response(result)

    @extend_schema(request=TransitionNoteSerializer, responses=_TRANSITION_RESPONSES)
    @action(detail=True, methods=["post"], url_path="cancel")
    def cancel(self, request, pk=None):
        return self._simple_transition(request, pk)

    @extend_schema(request=TransitionNoteSerializer, responses=_TRANSITION_RESPONSES)
    @action(detail=True, methods=["post"], url_path="mark-returned")
    def mark_returned(self, request, pk=None):
        return self._simple_transition(request, pk)

    # --------------------------------------------------
    # REFUNDS
    # --------------------------------------------------
    @action(detail=True, methods=["get"], url_path="refund-summary")
    def refunds_summary(self, request, pk=None):
        order = self.get_object()
        return Response(refund_summary(order))

    @extend_schema(
        request=RefundCreateCommandSerializer,
        responses={
            201: OpenApiResponse(description="Refund requested"),
            400: OpenApiResponse(description="Validation error (names the offending item)"),
            404: OpenApiResponse(description="Order not found"),
            409: OpenApiResponse(description="Order is not refundable"),
        },
    )
    @action(detail=True, methods=["post"], url_path="refunds")
    def create_refund(self, request, pk=None):
        command = RefundCreateCommandSerializer(data=request.data)
        command.is_valid(raise_exception=True)
        data = command.validated_data

        result = refund_orchestrator.create_refund(
            order_id=pk,
            items=[dict(line) for line in data["items"]],
            reason=data["reason"],
            note=data["note"],
            user=request.user,
        )
        return result_response(result, success_status=status.HTTP_201_CREATED)
