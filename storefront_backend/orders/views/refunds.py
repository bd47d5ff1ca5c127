# orders/views/refunds.py

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated

from orders.models import Refund, RefundStatus
from orders.serializers import RefundRejectCommandSerializer, RefundSerializer, TransitionNoteSerializer
from orders.services.refund_orchestrator import cancel_refund, process_refund, reject_refund
from orders.views.errors import result_response
from permissions.roles import (
    CAP_ORDERS_VIEW,
    CAP_REFUNDS_PROCESS,
    HasCapability,
)


class RefundViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    Refund review queue.

    - list/retrieve: orders.view
    - process / reject / cancel: refunds.process
    """

    queryset = (
        Refund.objects.select_related("order")
        .prefetch_related("items", "items__order_item", "history", "history__actor")
        .order_by("-created_at")
    )
    serializer_class = RefundSerializer
    permission_classes = [IsAuthenticated, HasCapability]
    filterset_fields = ["status", "reason", "order"]

    required_capability = CAP_ORDERS_VIEW

    def get_permissions(self):
        if self.action in {"process", "reject", "cancel"}:
            self.required_capability = CAP_REFUNDS_PROCESS
        else:
            self.required_capability = CAP_ORDERS_VIEW
        return [IsAuthenticated(), HasCapability()]

    @extend_schema(
        request=None,
        responses={
            200: OpenApiResponse(description="Refund processed"),
            202: OpenApiResponse(description="Gateway accepted the refund; awaiting confirmation"),
            404: OpenApiResponse(description="Refund not found"),
            409: OpenApiResponse(description="Refund is no longer REQUESTED"),
            502: OpenApiResponse(description="Payment gateway refused or unreachable"),
        },
    )
    @action(detail=True, methods=["post"], url_path="process")
    def process(self, request, pk=None):
        result = process_refund(refund_id=pk, user=request.user)
        if result.ok and result.data.get("status") == RefundStatus.REQUESTED:
            return result_response(result, success_status=status.HTTP_202_ACCEPTED)
        return result_response(result)

    @extend_schema(request=RefundRejectCommandSerializer)
    @action(detail=True, methods=["post"], url_path="reject")
    def reject(self, request, pk=None):
        command = RefundRejectCommandSerializer(data=request.data)
        command.is_valid(raise_exception=True)
        result = reject_refund(
            refund_id=pk, reason=command.validated_data["reason"], user=request.user
        )
        return result_response(result)

    @extend_schema(request=TransitionNoteSerializer)
    @action(detail=True, methods=["post"], url_path="cancel")
    def cancel(self, request, pk=None):
        command = TransitionNoteSerializer(data=request.data)
        command.is_valid(raise_exception=True)
        result = cancel_refund(
            refund_id=pk, user=request.user, note=command.validated_data["note"]
        )
        return result_response(result)
