# orders/tests/test_return_request.py

from datetime import timedelta

from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from orders.models import FulfillmentStatus, OrderStatus, Refund, RefundStatus
from orders.services.action_result import ActionStatus
from orders.services.refund_orchestrator import create_refund, reject_refund
from orders.services.return_request import request_return
from orders.tests.helpers import make_order, make_sku, make_user


@override_settings(RETURN_WINDOW_DAYS=14)
class ReturnRequestTests(TestCase):
    """
    GUARANTEES:
    - Only the owner of a delivered order can request a return
    - The return window is measured from delivered_at
    - A return stages a REQUESTED refund for all remaining quantities, restocked
    """

    def setUp(self):
        self.customer = make_user("customer")
        self.stranger = make_user("customer")
        self.shirt = make_sku(price=2500, inventory=3)
        self.scarf = make_sku(price=1200, inventory=3, title="Wool Scarf")
        self.order = make_order(
            lines=[(self.shirt, 2), (self.scarf, 1)],
            user=self.customer,
            status=OrderStatus.DELIVERED,
            fulfillment_status=FulfillmentStatus.DELIVERED,
            delivered_at=timezone.now() - timedelta(days=3),
        )

    def test_owner_requests_full_return(self):
        result = request_return(order_id=self.order.id, user=self.customer, note="too small")

        self.assertTrue(result.ok, result.message)
        refund = Refund.objects.get(id=result.data["refund_id"])
        self.assertEqual(refund.status, RefundStatus.REQUESTED)
        self.assertEqual(refund.amount, 2 * 2500 + 1200)
        self.assertEqual(refund.requested_by, self.customer)
        self.assertTrue(all(item.restock for item in refund.items.all()))

    def test_remaining_quantities_only(self):
        shirt_item = self.order.items.get(sku=self.shirt)
        staged = create_refund(
            order_id=self.order.id,
            items=[{"order_item_id": shirt_item.id, "quantity": 1}],
        )

        # a closed refund releases its quantity, a processed one would not
        reject_refund(refund_id=staged.data["refund_id"])

        result = request_return(order_id=self.order.id, user=self.customer)
        self.assertTrue(result.ok, result.message)
        refund = Refund.objects.get(id=result.data["refund_id"])
        self.assertEqual(refund.items.get(order_item=shirt_item).quantity, 2)

    def test_other_customers_order_looks_missing(self):
        result = request_return(order_id=self.order.id, user=self.stranger)

        self.assertEqual(result.status, ActionStatus.NOT_FOUND)
        self.assertFalse(Refund.objects.exists())

    def test_window_closed(self):
        self.order.delivered_at = timezone.now() - timedelta(days=15)
        self.order.save(update_fields=["delivered_at"])

        result = request_return(order_id=self.order.id, user=self.customer)
        self.assertEqual(result.status, ActionStatus.PERMISSION_ERROR)
        self.assertIn("14-day", result.message)

    def test_not_delivered(self):
        shipped = make_order(
            lines=[(self.shirt, 1)],
            user=self.customer,
            status=OrderStatus.SHIPPED,
            fulfillment_status=FulfillmentStatus.SHIPPED,
            tracking_number="1Z999AA10123456784",
        )

        result = request_return(order_id=shipped.id, user=self.customer)
        self.assertEqual(result.status, ActionStatus.PERMISSION_ERROR)

    def test_pending_refund_blocks_a_second_request(self):
        self.assertTrue(request_return(order_id=self.order.id, user=self.customer).ok)

        result = request_return(order_id=self.order.id, user=self.customer)
        self.assertEqual(result.status, ActionStatus.PERMISSION_ERROR)
        self.assertEqual(Refund.objects.count(), 1)


class CustomerOrderAPITests(TestCase):
    """
    GUARANTEES:
    - Customers list and read their own orders only
    - Return requests answer 201, someone else's order answers 404
    """

    def setUp(self):
        self.client = APIClient()
        self.customer = make_user("customer")
        self.stranger = make_user("customer")
        sku = make_sku(price=2500, inventory=3)
        self.order = make_order(
            lines=[(sku, 1)],
            user=self.customer,
            status=OrderStatus.DELIVERED,
            fulfillment_status=FulfillmentStatus.DELIVERED,
            delivered_at=timezone.now() - timedelta(days=1),
        )
        make_order(lines=[(sku, 1)], user=self.stranger)

    def test_list_own_orders(self):
        self.client.force_authenticate(self.customer)
        response = self.client.get("/api/orders/")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["count"], 1)
        self.assertEqual(response.data["results"][0]["order_number"], self.order.order_number)

    def test_anonymous_is_rejected(self):
        response = self.client.get("/api/orders/")
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_return_request_created(self):
        self.client.force_authenticate(self.customer)
        response = self.client.post(
            f"/api/orders/{self.order.id}/return-request/",
            {"reason": "CUSTOMER_REQUEST", "note": "wrong size"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["status"], RefundStatus.REQUESTED)
        self.assertEqual(response.data["amount"], 2500)

    def test_return_request_on_foreign_order(self):
        self.client.force_authenticate(self.stranger)
        response = self.client.post(f"/api/orders/{self.order.id}/return-request/", {}, format="json")

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["error"]["code"], "NOT_FOUND")
