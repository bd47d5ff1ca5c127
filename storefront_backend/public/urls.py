# public/urls.py
"""
PUBLIC API URLS (ONLINE STORE)

Base path (mounted in backend/urls.py):
    /api/public/

- POST /api/public/checkout/
- GET  /api/public/checkout/return/?session_id=&order_id=
- POST /api/public/payments/stripe/webhook/
"""

from __future__ import annotations

from django.urls import path

from public.views.checkout import PublicCheckoutView
from public.views.checkout_return import CheckoutReturnView
from public.views.stripe_webhook import StripeWebhookView

app_name = "public"

urlpatterns = [
    path("checkout/", PublicCheckoutView.as_view(), name="checkout"),
    path("checkout/return/", CheckoutReturnView.as_view(), name="checkout-return"),
    path("payments/stripe/webhook/", StripeWebhookView.as_view(), name="stripe-webhook"),
]
