# orders/services/order_creation.py

"""
======================================================
PATH: orders/services/order_creation.py
======================================================
ORDER CREATION (checkout initiation)

Creates a PENDING / PENDING / UNFULFILLED order from (sku_id, quantity) lines:
- prices and descriptors are read from the catalog ONCE and snapshotted
- stock is reserved with a conditional atomic decrement (no oversell)
- shipping zone + cost are resolved server-side from the postal code
- total = subtotal + shipping (server authoritative)

Raises django ValidationError on bad input; callers own error translation.
"""

from __future__ import annotations

import logging
from collections import OrderedDict

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction

from orders.models import Order, OrderHistory, OrderItem
from orders.services.shipping import quote_shipping
from products.models import ProductSku
from products.services.inventory import reserve_stock

logger = logging.getLogger(__name__)


def _normalize_lines(lines) -> "OrderedDict[str, int]":
    if not isinstance(lines, (list, tuple)) or not lines:
        raise ValidationError("At least one item is required.")

    agg: "OrderedDict[str, int]" = OrderedDict()
    for line in lines:
        if not isinstance(line, dict):
            raise ValidationError("Items must be objects.")
        sku_id = str(line.get("sku_id") or "").strip()
        if not sku_id:
            raise ValidationError("Each item must include sku_id.")
        try:
            qty = int(line.get("quantity"))
        except (TypeError, ValueError):
            qty = 0
        if qty <= 0:
            raise ValidationError(f"Quantity for SKU {sku_id} must be an integer >= 1.")
        agg[sku_id] = agg.get(sku_id, 0) + qty
    return agg


@transaction.atomic
def create_order(
    *,
    lines,
    customer_email: str,
    customer_name: str = "",
    shipping_address: dict,
    user=None,
) -> Order:
    quantities = _normalize_lines(lines)

    try:
        skus = {
            str(s.id): s
            for s in ProductSku.objects.select_related("product").filter(
                id__in=list(quantities.keys()), is_active=True, product__is_active=True
            )
        }
    except ValidationError:
        raise ValidationError("Invalid sku_id.")

    missing = [sid for sid in quantities if sid not in skus]
    if missing:
        raise ValidationError(f"Unknown or inactive SKU: {missing[0]}")

    subtotal = sum(int(skus[sid].price) * qty for sid, qty in quantities.items())

    address = shipping_address or {}
    shipping_cost, zone = quote_shipping(
        country_code=address.get("country") or "FR",
        postal_code=address.get("postal_code") or "",
        subtotal=subtotal,
    )

    order = Order.objects.create(
        user=user if getattr(user, "is_authenticated", False) else None,
        customer_email=(customer_email or "").strip(),
        customer_name=(customer_name or "").strip(),
        subtotal=subtotal,
        shipping_cost=shipping_cost,
        total=subtotal + shipping_cost,
        currency=settings.PAYMENTS["STRIPE"]["CURRENCY"],
        shipping_address_line1=(address.get("line1") or "").strip(),
        shipping_address_line2=(address.get("line2") or "").strip(),
        shipping_city=(address.get("city") or "").strip(),
        shipping_postal_code=(address.get("postal_code") or "").strip(),
        shipping_country=(address.get("country") or "FR").strip().upper(),
        shipping_zone=zone.zone,
        shipping_department=zone.department,
    )

    for sid, qty in quantities.items():
        sku = skus[sid]
        reserve_stock(sku_id=sku.id, quantity=qty, order=order)
        OrderItem.objects.create(
            order=order,
            sku=sku,
            product_title=sku.product.title,
            sku_code=sku.sku,
            sku_color=sku.color,
            sku_material=sku.material,
            sku_size=sku.size,
            unit_price=int(sku.price),
            quantity=qty,
        )

    OrderHistory.objects.create(
        order=order,
        action=OrderHistory.Action.CREATED,
        to_status=order.status,
        to_payment_status=order.payment_status,
        to_fulfillment_status=order.fulfillment_status,
    )

    logger.info(
        "Order created",
        extra={"order_id": str(order.id), "order_number": order.order_number, "total": order.total},
    )
    return order
