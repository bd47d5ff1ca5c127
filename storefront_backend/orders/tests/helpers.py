# orders/tests/helpers.py

"""
Shared builders for order/refund tests.

Orders are created directly (not through checkout) so each test can start
from exactly the status tuple it needs. Inventory is therefore NOT reserved
by these helpers; assertions compare against the SKU's starting stock.
"""

from __future__ import annotations

import uuid

from django.contrib.auth import get_user_model

from orders.models import (
    FulfillmentStatus,
    Order,
    OrderItem,
    OrderStatus,
    PaymentStatus,
)
from products.models import Product, ProductSku

User = get_user_model()


def make_user(role: str = "customer", email: str | None = None):
    return User.objects.create_user(
        email=email or f"{role}-{uuid.uuid4().hex[:6]}@example.com",
        password="pass",
        role=role,
    )


def make_sku(*, price: int = 2500, inventory: int = 10, title: str = "Linen Shirt", **variant):
    product = Product.objects.create(title=title, slug=f"{title.lower().replace(' ', '-')}-{uuid.uuid4().hex[:6]}")
    return ProductSku.objects.create(
        product=product,
        sku=f"SKU-{uuid.uuid4().hex[:8].upper()}",
        color=variant.get("color", "Blue"),
        material=variant.get("material", "Linen"),
        size=variant.get("size", "M"),
        price=price,
        inventory=inventory,
    )


def make_order(
    *,
    lines,
    status: str = OrderStatus.PROCESSING,
    payment_status: str = PaymentStatus.PAID,
    fulfillment_status: str = FulfillmentStatus.PROCESSING,
    shipping_cost: int = 0,
    user=None,
    payment_intent_id: str = "pi_test_123",
    **extra,
) -> Order:
    """
    lines: iterable of (sku, quantity)
    """
    lines = list(lines)
    subtotal = sum(int(sku.price) * qty for sku, qty in lines)

    order = Order.objects.create(
        user=user,
        customer_email=getattr(user, "email", None) or "buyer@example.com",
        customer_name="Jane Buyer",
        subtotal=subtotal,
        shipping_cost=shipping_cost,
        total=subtotal + shipping_cost,
        status=status,
        payment_status=payment_status,
        fulfillment_status=fulfillment_status,
        shipping_postal_code="75011",
        shipping_zone="domestic",
        shipping_department="75",
        payment_intent_id=payment_intent_id,
        **extra,
    )

    for sku, qty in lines:
        OrderItem.objects.create(
            order=order,
            sku=sku,
            product_title=sku.product.title,
            sku_code=sku.sku,
            sku_color=sku.color,
            sku_material=sku.material,
            sku_size=sku.size,
            unit_price=sku.price,
            quantity=qty,
        )
    return order
