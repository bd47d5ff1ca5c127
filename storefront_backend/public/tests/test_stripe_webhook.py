# public/tests/test_stripe_webhook.py

import json
import time
from unittest.mock import patch

from django.test import TestCase

from orders.models import FulfillmentStatus, OrderHistory, OrderStatus, PaymentStatus, Refund, RefundStatus
from orders.services.refund_orchestrator import create_refund, process_refund
from orders.tests.helpers import make_order, make_sku
from public.services import stripe_gateway

WEBHOOK_SECRET = "whsec_test_dummy"


class SignedWebhookMixin:
    url = "/api/public/payments/stripe/webhook/"

    def _post(self, body, *, secret=WEBHOOK_SECRET, timestamp=None):
        payload = body if isinstance(body, bytes) else json.dumps(body).encode("utf-8")
        ts = timestamp or int(time.time())
        signature = stripe_gateway.compute_webhook_signature(payload=payload, timestamp=ts, secret=secret)
        return self.client.post(
            self.url,
            data=payload,
            content_type="application/json",
            HTTP_STRIPE_SIGNATURE=f"t={ts},v1={signature}",
        )


class StripeWebhookTests(SignedWebhookMixin, TestCase):
    """
    GUARANTEES:
    - Unsigned or badly signed events are refused with 400
    - Authentic events are always acknowledged with 200
    - Session events move the order exactly once
    """

    def setUp(self):
        self.sku = make_sku(price=2500, inventory=5)
        self.order = make_order(
            lines=[(self.sku, 1)],
            status=OrderStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
            fulfillment_status=FulfillmentStatus.UNFULFILLED,
            payment_intent_id="",
            checkout_session_id="cs_test_wh",
        )

    def _event(self, event_type, **session):
        obj = {
            "id": "cs_test_wh",
            "object": "checkout.session",
            "status": "complete",
            "payment_status": "paid",
            "payment_intent": "pi_wh_1",
            "amount_total": self.order.total,
            "metadata": {"order_id": str(self.order.id), "order_number": self.order.order_number},
        }
        obj.update(session)
        return {"id": "evt_1", "type": event_type, "data": {"object": obj}}

    def test_completed_event_marks_paid(self):
        response = self._post(self._event("checkout.session.completed"))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"ok": True, "detail": "Updated"})
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, PaymentStatus.PAID)
        self.assertEqual(self.order.payment_intent_id, "pi_wh_1")

    def test_retried_event_is_a_no_op(self):
        self._post(self._event("checkout.session.completed"))
        response = self._post(self._event("checkout.session.completed"))

        self.assertEqual(response.json()["detail"], "No change")
        self.assertEqual(
            self.order.history.filter(action=OrderHistory.Action.PAYMENT_CONFIRMED).count(), 1
        )

    def test_expired_event_releases_stock(self):
        response = self._post(
            self._event("checkout.session.expired", status="expired", payment_status="unpaid")
        )

        self.assertEqual(response.status_code, 200)
        self.order.refresh_from_db()
        self.sku.refresh_from_db()
        self.assertEqual(self.order.payment_status, PaymentStatus.EXPIRED)
        self.assertEqual(self.sku.inventory, 6)

    def test_async_failure(self):
        self._post(self._event("checkout.session.async_payment_failed", payment_status="unpaid"))

        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, PaymentStatus.FAILED)

    def test_late_capture_after_expiry(self):
        self._post(self._event("checkout.session.expired", status="expired", payment_status="unpaid"))
        self._post(self._event("checkout.session.async_payment_succeeded"))

        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, PaymentStatus.PAID)

    def test_invalid_signature(self):
        response = self._post(self._event("checkout.session.completed"), secret="whsec_wrong")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["code"], "INVALID_SIGNATURE")
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, PaymentStatus.PENDING)

    def test_missing_signature_and_stale_timestamp(self):
        response = self.client.post(self.url, data=b"{}", content_type="application/json")
        self.assertEqual(response.status_code, 400)

        response = self._post(self._event("checkout.session.completed"), timestamp=int(time.time()) - 3600)
        self.assertEqual(response.status_code, 400)

    def test_unhandled_event_is_ignored(self):
        response = self._post({"id": "evt_2", "type": "charge.refunded", "data": {"object": {}}})
        self.assertEqual(response.json(), {"ok": True, "detail": "Ignored"})

    def test_processing_failure_is_still_acknowledged(self):
        event = self._event("checkout.session.completed", metadata={"order_id": "not-a-uuid"})
        response = self._post(event)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"ok": False, "detail": "Processing failed"})

    def test_unparseable_body(self):
        response = self._post(b"not json")
        self.assertEqual(response.json(), {"ok": False, "detail": "Invalid payload"})

    def test_signed_body_that_is_not_an_object(self):
        for body in (b"[]", b"null", b"\"checkout.session.completed\"", b"42"):
            with self.subTest(body=body):
                response = self._post(body)
                self.assertEqual(response.status_code, 200)
                self.assertEqual(response.json(), {"ok": False, "detail": "Invalid payload"})

    def test_event_with_malformed_data_is_acknowledged(self):
        response = self._post({"id": "evt_3", "type": "checkout.session.completed", "data": []})

        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["ok"])


class StripeRefundWebhookTests(SignedWebhookMixin, TestCase):
    """
    GUARANTEES:
    - A refund the gateway left pending is finished by its refund.updated event
    - A refund the gateway failed is closed without touching stock or payment
    - Refunds this system never created are acknowledged and ignored
    """

    def setUp(self):
        self.sku = make_sku(price=2500, inventory=5)
        self.order = make_order(lines=[(self.sku, 2)], payment_intent_id="pi_wh_refund")
        item = self.order.items.get()

        result = create_refund(
            order_id=self.order.id,
            items=[{"order_item_id": item.id, "quantity": 1, "restock": True}],
        )
        self.refund = Refund.objects.get(id=result.data["refund_id"])

        pending = stripe_gateway.GatewayRefund(id="re_wh_1", status="pending", amount=2500)
        with patch("public.services.stripe_gateway.create_refund", return_value=pending):
            process_refund(refund_id=self.refund.id)

    def _refund_event(self, event_type, **refund):
        obj = {
            "id": "re_wh_1",
            "object": "refund",
            "status": "succeeded",
            "amount": 2500,
            "payment_intent": "pi_wh_refund",
            "metadata": {"refund_id": str(self.refund.id), "order_id": str(self.order.id)},
        }
        obj.update(refund)
        return {"id": "evt_re_1", "type": event_type, "data": {"object": obj}}

    def test_refund_updated_succeeded_applies_refund(self):
        response = self._post(self._refund_event("refund.updated"))

        self.assertEqual(response.json(), {"ok": True, "detail": "Updated"})
        self.refund.refresh_from_db()
        self.order.refresh_from_db()
        self.sku.refresh_from_db()
        self.assertEqual(self.refund.status, RefundStatus.PROCESSED)
        self.assertEqual(self.order.payment_status, PaymentStatus.PARTIALLY_REFUNDED)
        self.assertEqual(self.sku.inventory, 6)

        # charge.refund.updated carries the same refund: nothing more happens
        response = self._post(self._refund_event("charge.refund.updated"))
        self.assertEqual(response.json(), {"ok": True, "detail": "No change"})
        self.sku.refresh_from_db()
        self.assertEqual(self.sku.inventory, 6)

    def test_refund_failed_closes_refund(self):
        response = self._post(
            self._refund_event("refund.failed", status="failed", failure_reason="expired_or_canceled_card")
        )

        self.assertEqual(response.json(), {"ok": True, "detail": "Updated"})
        self.refund.refresh_from_db()
        self.order.refresh_from_db()
        self.sku.refresh_from_db()
        self.assertEqual(self.refund.status, RefundStatus.CANCELLED)
        self.assertEqual(self.order.payment_status, PaymentStatus.PAID)
        self.assertEqual(self.sku.inventory, 5)

    def test_still_pending_is_no_change(self):
        response = self._post(self._refund_event("refund.updated", status="pending"))

        self.assertEqual(response.json(), {"ok": True, "detail": "No change"})
        self.refund.refresh_from_db()
        self.assertEqual(self.refund.status, RefundStatus.REQUESTED)

    def test_untracked_refund_is_ignored(self):
        response = self._post(self._refund_event("refund.updated", id="re_dashboard", metadata={}))

        self.assertEqual(response.json(), {"ok": True, "detail": "Ignored"})
        self.refund.refresh_from_db()
        self.assertEqual(self.refund.status, RefundStatus.REQUESTED)
