# public/tests/test_checkout_return.py

from unittest.mock import patch

from django.test import TestCase

from orders.models import FulfillmentStatus, OrderHistory, OrderStatus, PaymentStatus
from orders.services.order_lifecycle import cancel_order
from orders.tests.helpers import make_order, make_sku
from public.services.stripe_gateway import CheckoutSession, PaymentGatewayError

RETRIEVE_SESSION = "public.services.stripe_gateway.retrieve_checkout_session"
FRONTEND = "http://testserver-frontend"


class CheckoutReturnTests(TestCase):
    """
    Return from the hosted payment page.

    GUARANTEES:
    - The redirect depends only on the session the gateway reports
    - The confirmation page shows the order number from session metadata
    - Arriving twice changes nothing the second time
    - Any failure lands on the processing_error page
    """

    url = "/api/public/checkout/return/"

    def setUp(self):
        self.sku = make_sku(price=2500, inventory=5)
        self.order = make_order(
            lines=[(self.sku, 2)],
            status=OrderStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
            fulfillment_status=FulfillmentStatus.UNFULFILLED,
            payment_intent_id="",
            checkout_session_id="cs_test_1",
        )

    def _session(self, **overrides):
        fields = {
            "id": "cs_test_1",
            "status": "complete",
            "payment_status": "paid",
            "payment_intent": "pi_live_1",
            "amount_total": self.order.total,
            "metadata": {"order_id": str(self.order.id), "order_number": self.order.order_number},
        }
        fields.update(overrides)
        return CheckoutSession(**fields)

    def _get(self, session=None, *, side_effect=None, order_id=None, session_id="cs_test_1"):
        with patch(RETRIEVE_SESSION, return_value=session, side_effect=side_effect):
            return self.client.get(
                self.url,
                {"session_id": session_id, "order_id": order_id or str(self.order.id)},
            )

    def test_paid_session_confirms_order(self):
        response = self._get(self._session())

        self.assertEqual(response.status_code, 302)
        self.assertEqual(
            response["Location"],
            f"{FRONTEND}/checkout/confirmation?order={self.order.order_number}",
        )

        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, PaymentStatus.PAID)
        self.assertEqual(self.order.status, OrderStatus.PENDING)
        self.assertEqual(self.order.payment_intent_id, "pi_live_1")
        self.assertIsNotNone(self.order.paid_at)

    def test_order_number_comes_from_metadata(self):
        session = self._session(
            metadata={"order_id": str(self.order.id), "order_number": "ORD-FROM-GATEWAY"}
        )
        with patch(RETRIEVE_SESSION, return_value=session):
            response = self.client.get(
                self.url,
                {"session_id": "cs_test_1", "order_id": str(self.order.id), "order": "ORD-FORGED"},
            )

        self.assertEqual(
            response["Location"], f"{FRONTEND}/checkout/confirmation?order=ORD-FROM-GATEWAY"
        )

    def test_repeat_arrival_is_idempotent(self):
        self._get(self._session())
        response = self._get(self._session())

        self.assertIn("/checkout/confirmation", response["Location"])
        self.assertEqual(
            self.order.history.filter(action=OrderHistory.Action.PAYMENT_CONFIRMED).count(), 1
        )

    def test_open_session_retries_checkout(self):
        response = self._get(self._session(status="open", payment_status="unpaid"))

        self.assertEqual(response["Location"], f"{FRONTEND}/checkout?retry=true")
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, PaymentStatus.PENDING)

    def test_complete_but_unpaid_is_pending(self):
        response = self._get(self._session(payment_status="unpaid"))

        self.assertEqual(
            response["Location"],
            f"{FRONTEND}/checkout/confirmation?pending=true&order={self.order.order_number}",
        )
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, PaymentStatus.PENDING)

    def test_expired_session_releases_stock(self):
        response = self._get(self._session(status="expired", payment_status="unpaid"))

        self.assertEqual(response["Location"], f"{FRONTEND}/checkout/cancellation?reason=expired")
        self.order.refresh_from_db()
        self.sku.refresh_from_db()
        self.assertEqual(self.order.payment_status, PaymentStatus.EXPIRED)
        # helpers do not reserve, so the release shows up as +2
        self.assertEqual(self.sku.inventory, 7)

    def test_gateway_failure_is_processing_error(self):
        response = self._get(side_effect=PaymentGatewayError("No such checkout.session"))

        self.assertEqual(
            response["Location"], f"{FRONTEND}/checkout/cancellation?reason=processing_error"
        )

    def test_amount_mismatch_is_processing_error(self):
        response = self._get(self._session(amount_total=1))

        self.assertIn("reason=processing_error", response["Location"])
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, PaymentStatus.PENDING)

    def test_session_of_another_order_is_refused(self):
        response = self._get(self._session(id="cs_other", metadata={}))

        self.assertIn("reason=processing_error", response["Location"])
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, PaymentStatus.PENDING)

    def test_malformed_or_missing_ids(self):
        with patch(RETRIEVE_SESSION) as retrieve:
            malformed = self.client.get(self.url, {"session_id": "cs_test_1", "order_id": "123"})
            missing = self.client.get(self.url, {"order_id": str(self.order.id)})

        retrieve.assert_not_called()
        for response in (malformed, missing):
            self.assertEqual(
                response["Location"],
                f"{FRONTEND}/checkout/cancellation?reason=processing_error",
            )

    def test_capture_after_admin_cancel_is_flagged(self):
        """
        GUARANTEES:
        - money captured after an unpaid order was cancelled is still recorded
        - the capture is logged and written to history as a late capture
        """
        self.assertTrue(cancel_order(order_id=self.order.id, note="customer gave up").ok)
        self.sku.refresh_from_db()
        self.assertEqual(self.sku.inventory, 7)

        with self.assertLogs("public.services.checkout_reconciliation", level="WARNING") as logs:
            self._get(self._session())

        self.assertTrue(any("Late capture" in line for line in logs.output))

        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, PaymentStatus.PAID)
        self.assertEqual(self.order.status, OrderStatus.CANCELLED)

        confirmed = self.order.history.get(action=OrderHistory.Action.PAYMENT_CONFIRMED)
        self.assertIn("late capture", confirmed.note)

    def test_expiry_after_admin_cancel_does_not_release_twice(self):
        cancel_order(order_id=self.order.id)

        self._get(self._session(status="expired", payment_status="unpaid"))

        self.order.refresh_from_db()
        self.sku.refresh_from_db()
        self.assertEqual(self.order.payment_status, PaymentStatus.EXPIRED)
        self.assertEqual(self.sku.inventory, 7)
