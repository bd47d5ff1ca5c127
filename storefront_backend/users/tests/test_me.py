from django.test import TestCase
from rest_framework.test import APIClient

from orders.tests.helpers import make_user


class MeEndpointTests(TestCase):
    url = "/api/auth/me/"

    def setUp(self):
        self.client = APIClient()

    def test_support_capabilities(self):
        user = make_user("support", email="support@example.com")
        self.client.force_authenticate(user)

        response = self.client.get(self.url)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["email"], "support@example.com")
        self.assertEqual(response.data["role"], "support")
        self.assertEqual(response.data["capabilities"], ["orders.view", "refunds.create"])

    def test_customer_has_no_capabilities(self):
        self.client.force_authenticate(make_user("customer"))
        response = self.client.get(self.url)
        self.assertEqual(response.data["capabilities"], [])

    def test_requires_authentication(self):
        self.assertEqual(self.client.get(self.url).status_code, 401)
