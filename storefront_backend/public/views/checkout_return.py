from __future__ import annotations

import logging
import uuid
from urllib.parse import urlencode, urlparse

from django.conf import settings
from django.shortcuts import redirect
from rest_framework.permissions import AllowAny
from rest_framework.throttling import AnonRateThrottle
from rest_framework.views import APIView

from public.services import stripe_gateway
from public.services.checkout_reconciliation import (
    OUTCOME_EXPIRED,
    OUTCOME_OPEN,
    OUTCOME_PAID,
    OUTCOME_PENDING,
    apply_session,
)

logger = logging.getLogger(__name__)


class PublicPollThrottle(AnonRateThrottle):
    scope = "public_poll"


def _safe_frontend_base() -> str:
    base = (getattr(settings, "FRONTEND_BASE_URL", "") or "").strip()
    if not base:
        base = "http://localhost:5173"

    parsed = urlparse(base)
    if not parsed.scheme or not parsed.netloc:
        logger.warning("Invalid FRONTEND_BASE_URL detected")
        return "http://localhost:5173"

    return base.rstrip("/")


def _frontend_url(page: str, **params) -> str:
    path = settings.CHECKOUT_REDIRECTS[page]
    query = urlencode({k: v for k, v in params.items() if v not in (None, "")})
    url = f"{_safe_frontend_base()}{path}"
    return f"{url}?{query}" if query else url


def _processing_error():
    return redirect(_frontend_url("CANCELLATION", reason="processing_error"))


class CheckoutReturnView(APIView):
    """
    Landing endpoint for the hosted payment page's success redirect.

    The customer's browser arrives here with ?session_id=&order_id=. The
    session is re-read from the gateway and the order is reconciled from what
    the gateway reports; the browser is then sent to the matching frontend
    page. Query parameters are never trusted for the displayed order number.
    """

    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [PublicPollThrottle]

    def get(self, request, *args, **kwargs):
        session_id = (request.query_params.get("session_id") or "").strip()
        order_id = (request.query_params.get("order_id") or "").strip()

        if not session_id or not order_id:
            logger.warning("Checkout return without session/order id")
            return _processing_error()

        try:
            uuid.UUID(order_id)
        except ValueError:
            logger.warning("Checkout return with malformed order id", extra={"order_id": order_id})
            return _processing_error()

        try:
            session = stripe_gateway.retrieve_checkout_session(session_id)
            outcome = apply_session(session, fallback_order_id=order_id, source="checkout_return")
        except Exception:
            logger.exception(
                "Checkout return reconciliation failed",
                extra={"session_id": session_id, "order_id": order_id},
            )
            return _processing_error()

        if outcome.kind == OUTCOME_PAID:
            return redirect(_frontend_url("CONFIRMATION", order=outcome.order_number))
        if outcome.kind == OUTCOME_OPEN:
            return redirect(_frontend_url("CHECKOUT", retry="true"))
        if outcome.kind == OUTCOME_PENDING:
            return redirect(
                _frontend_url("CONFIRMATION", pending="true", order=outcome.order_number)
            )
        if outcome.kind == OUTCOME_EXPIRED:
            return redirect(_frontend_url("CANCELLATION", reason="expired"))

        logger.warning(
            "Checkout return with unexpected session state",
            extra={"session_id": session_id, "outcome": outcome.kind},
        )
        return _processing_error()
