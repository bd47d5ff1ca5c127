from __future__ import annotations

import json
import logging

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle
from rest_framework.views import APIView

from orders.services.action_result import ActionStatus
from orders.services.refund_orchestrator import apply_gateway_refund_update
from public.serializers import PublicWebhookAckSerializer
from public.services import stripe_gateway
from public.services.checkout_reconciliation import (
    OUTCOME_EXPIRED,
    OUTCOME_FAILED,
    OUTCOME_PAID,
    apply_session,
)

logger = logging.getLogger(__name__)


class WebhookThrottle(AnonRateThrottle):
    scope = "webhook"


# event type -> forced outcome (None = classify from the session itself)
_HANDLED_EVENTS = {
    "checkout.session.completed": None,
    "checkout.session.async_payment_succeeded": OUTCOME_PAID,
    "checkout.session.async_payment_failed": OUTCOME_FAILED,
    "checkout.session.expired": OUTCOME_EXPIRED,
}

# events whose data.object is a refund
_REFUND_EVENTS = {
    "refund.created",
    "refund.updated",
    "refund.failed",
    "charge.refund.updated",
}


def _ack(ok: bool, detail: str = "") -> Response:
    return Response({"ok": ok, "detail": detail}, status=status.HTTP_200_OK)


def _event_object(event: dict) -> dict:
    data = event.get("data")
    obj = data.get("object") if isinstance(data, dict) else None
    return obj if isinstance(obj, dict) else {}


class StripeWebhookView(APIView):
    """
    Signed gateway events.

    Only the signature gate can produce a non-200: once an event is
    authentic it is always acknowledged, so the gateway stops retrying even
    when local processing fails (failures are logged for follow-up).
    """

    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [WebhookThrottle]

    @extend_schema(
        request=None,
        responses={
            200: PublicWebhookAckSerializer,
            400: OpenApiResponse(description="Invalid signature"),
        },
    )
    def post(self, request, *args, **kwargs):
        raw = request.body or b""
        header = request.META.get("HTTP_STRIPE_SIGNATURE")

        if not stripe_gateway.verify_webhook_signature(payload=raw, header=header):
            logger.warning("Webhook rejected: invalid signature")
            return Response(
                {"error": {"code": "INVALID_SIGNATURE", "message": "Invalid signature."}},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            event = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, ValueError):
            event = None
        if not isinstance(event, dict):
            logger.warning("Webhook with unparseable body")
            return _ack(False, "Invalid payload")

        event_type = str(event.get("type") or "")
        if event_type in _REFUND_EVENTS:
            return self._handle_refund_event(event, event_type)
        if event_type not in _HANDLED_EVENTS:
            logger.info("Webhook ignored", extra={"event_type": event_type})
            return _ack(True, "Ignored")

        try:
            session = stripe_gateway.CheckoutSession.from_api(_event_object(event))
            outcome = apply_session(
                session,
                kind=_HANDLED_EVENTS[event_type],
                source=f"webhook:{event_type}",
            )
        except Exception:
            logger.exception(
                "Webhook processing failed",
                extra={"event_type": event_type, "event_id": event.get("id")},
            )
            return _ack(False, "Processing failed")

        return _ack(True, "Updated" if outcome.changed else "No change")

    def _handle_refund_event(self, event: dict, event_type: str) -> Response:
        try:
            gateway_refund = stripe_gateway.GatewayRefund.from_api(_event_object(event))
            result = apply_gateway_refund_update(gateway_refund=gateway_refund)
        except Exception:
            logger.exception(
                "Webhook refund processing failed",
                extra={"event_type": event_type, "event_id": event.get("id")},
            )
            return _ack(False, "Processing failed")

        if result.status == ActionStatus.NOT_FOUND:
            logger.info(
                "Webhook refund not tracked locally",
                extra={"event_type": event_type, "gateway_refund_id": gateway_refund.id},
            )
            return _ack(True, "Ignored")

        # GATEWAY_ERROR here means the gateway failed the refund and it was closed locally
        if result.status not in {ActionStatus.SUCCESS, ActionStatus.GATEWAY_ERROR}:
            logger.error(
                "Webhook refund update rejected",
                extra={
                    "event_type": event_type,
                    "gateway_refund_id": gateway_refund.id,
                    "error": result.message,
                },
            )
            return _ack(False, result.message)

        return _ack(True, "Updated" if result.data.get("changed") else "No change")
