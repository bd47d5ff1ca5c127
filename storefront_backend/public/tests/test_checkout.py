# public/tests/test_checkout.py

from unittest.mock import patch

from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from orders.models import Order, OrderStatus, PaymentStatus
from orders.tests.helpers import make_sku
from public.services.stripe_gateway import CheckoutSession, PaymentGatewayError

CREATE_SESSION = "public.services.stripe_gateway.create_checkout_session"


class PublicCheckoutTests(TestCase):
    """
    Public checkout (anonymous).

    GUARANTEES:
    - Order is created PENDING with stock reserved before the gateway is called
    - Session id is remembered on the order
    - A gateway refusal cancels the order and gives the stock back
    """

    url = "/api/public/checkout/"

    def setUp(self):
        self.client = APIClient()
        self.sku = make_sku(price=2500, inventory=4)

    def _payload(self, quantity=2, **overrides):
        payload = {
            "items": [{"sku_id": str(self.sku.id), "quantity": quantity}],
            "customer_email": "buyer@example.com",
            "customer_name": "Jane Buyer",
            "shipping_address": {
                "line1": "12 rue Oberkampf",
                "city": "Paris",
                "postal_code": "75011",
                "country": "FR",
            },
        }
        payload.update(overrides)
        return payload

    def test_checkout_opens_session(self):
        session = CheckoutSession(
            id="cs_test_1",
            status="open",
            payment_status="unpaid",
            url="https://checkout.stripe.com/c/pay/cs_test_1",
        )
        with patch(CREATE_SESSION, return_value=session) as create:
            response = self.client.post(self.url, self._payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["checkout_url"], session.url)

        order = Order.objects.get(id=response.data["order_id"])
        self.assertEqual(order.checkout_session_id, "cs_test_1")
        self.assertEqual(order.status, OrderStatus.PENDING)
        self.assertEqual(order.payment_status, PaymentStatus.PENDING)
        self.assertEqual(response.data["total"], order.total)

        kwargs = create.call_args.kwargs
        self.assertIn("/api/public/checkout/return/", kwargs["success_url"])
        self.assertIn(f"order_id={order.id}", kwargs["success_url"])
        self.assertTrue(kwargs["success_url"].endswith("session_id={CHECKOUT_SESSION_ID}"))
        self.assertEqual(
            kwargs["cancel_url"], "http://testserver-frontend/checkout/cancellation?reason=cancelled"
        )

        self.sku.refresh_from_db()
        self.assertEqual(self.sku.inventory, 2)

    def test_gateway_failure_cancels_order(self):
        with patch(CREATE_SESSION, side_effect=PaymentGatewayError("Stripe unreachable: timed out")):
            response = self.client.post(self.url, self._payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertEqual(response.data["error"]["code"], "PAYMENT_GATEWAY_ERROR")

        order = Order.objects.get()
        self.assertEqual(order.status, OrderStatus.CANCELLED)
        self.sku.refresh_from_db()
        self.assertEqual(self.sku.inventory, 4)

    def test_insufficient_stock(self):
        with patch(CREATE_SESSION) as create:
            response = self.client.post(self.url, self._payload(quantity=5), format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"]["code"], "VALIDATION_ERROR")
        create.assert_not_called()
        self.assertFalse(Order.objects.exists())

    def test_payload_shape_is_validated(self):
        response = self.client.post(self.url, self._payload(items=[]), format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
