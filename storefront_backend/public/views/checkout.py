# public/views/checkout.py
"""
PUBLIC CHECKOUT (ONLINE STORE)

POST /api/public/checkout/

Flow:
1) create the order (PENDING, stock reserved) in one transaction
2) open a hosted checkout session at the gateway
3) remember the session id on the order

If the gateway refuses, the fresh order is cancelled (which releases the
reservation) and the caller gets a 502.

Security hardening:
- Throttle (public_write) because it's a write endpoint (abuse target)
"""

from __future__ import annotations

import logging
from urllib.parse import urlencode

from django.core.exceptions import ValidationError
from django.urls import reverse
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle
from rest_framework.views import APIView

from orders.services.action_result import first_message
from orders.services.order_creation import create_order
from orders.services.order_lifecycle import cancel_order
from orders.views.errors import error_response
from public.serializers import PublicCheckoutResponseSerializer, PublicCheckoutSerializer
from public.services import stripe_gateway
from public.views.checkout_return import _frontend_url

logger = logging.getLogger(__name__)


class PublicWriteThrottle(AnonRateThrottle):
    scope = "public_write"


def _return_urls(request, order) -> tuple[str, str]:
    # The gateway substitutes {CHECKOUT_SESSION_ID} itself; it must stay unencoded.
    success = (
        request.build_absolute_uri(reverse("public:checkout-return"))
        + "?"
        + urlencode({"order_id": str(order.id)})
        + "&session_id={CHECKOUT_SESSION_ID}"
    )
    cancel = _frontend_url("CANCELLATION", reason="cancelled")
    return success, cancel


class PublicCheckoutView(APIView):
    permission_classes = [AllowAny]
    throttle_classes = [PublicWriteThrottle]

    @extend_schema(
        request=PublicCheckoutSerializer,
        responses={
            201: PublicCheckoutResponseSerializer,
            400: OpenApiResponse(description="Validation error (cart, address or stock)"),
            502: OpenApiResponse(description="Payment gateway unavailable"),
        },
    )
    def post(self, request, *args, **kwargs):
        payload = PublicCheckoutSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        data = payload.validated_data

        user = request.user if getattr(request.user, "is_authenticated", False) else None

        try:
            order = create_order(
                lines=[dict(line) for line in data["items"]],
                customer_email=data["customer_email"],
                customer_name=data.get("customer_name") or "",
                shipping_address=dict(data["shipping_address"]),
                user=user,
            )
        except ValidationError as exc:
            return error_response(
                code="VALIDATION_ERROR",
                message=first_message(exc),
                http_status=status.HTTP_400_BAD_REQUEST,
            )

        success_url, cancel_url = _return_urls(request, order)

        try:
            session = stripe_gateway.create_checkout_session(
                order=order, success_url=success_url, cancel_url=cancel_url
            )
        except stripe_gateway.PaymentGatewayError as exc:
            logger.error(
                "Checkout session creation failed",
                extra={"order_id": str(order.id), "code": exc.code},
            )
            cancel_order(order_id=order.id, note="checkout session creation failed")
            return error_response(
                code="PAYMENT_GATEWAY_ERROR",
                message="Payment provider is unavailable. Please try again.",
                http_status=status.HTTP_502_BAD_GATEWAY,
            )

        order.checkout_session_id = session.id
        order.save(update_fields=["checkout_session_id", "updated_at"])

        logger.info(
            "Checkout session opened",
            extra={"order_id": str(order.id), "session_id": session.id},
        )

        out = PublicCheckoutResponseSerializer(
            {
                "order_id": order.id,
                "order_number": order.order_number,
                "total": order.total,
                "currency": order.currency,
                "checkout_url": session.url,
            }
        )
        return Response(out.data, status=status.HTTP_201_CREATED)
