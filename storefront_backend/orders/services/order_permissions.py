# orders/services/order_permissions.py

"""
======================================================
PATH: orders/services/order_permissions.py
======================================================
ORDER PERMISSION VECTOR

Rather than a single merged transition graph, every read computes a vector of
independent boolean predicates from the tuple:

    (status, payment_status, fulfillment_status, has_tracking_number)

Each predicate is one line below so the rule set can be audited line by line.
The UI uses the vector to enable/disable actions; the lifecycle services
re-evaluate the relevant predicate under a row lock before every write.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass

from orders.models.status import FulfillmentStatus, OrderStatus, PaymentStatus


@dataclass(frozen=True)
class OrderPermissions:
    can_mark_as_processing: bool
    can_mark_as_paid: bool
    can_mark_as_shipped: bool
    can_mark_as_delivered: bool
    can_revert_to_processing: bool
    can_update_tracking: bool
    can_cancel: bool
    can_refund: bool
    can_mark_as_returned: bool

    def as_dict(self) -> dict[str, bool]:
        return asdict(self)


def order_permissions(
    status: str,
    payment_status: str,
    fulfillment_status: str,
    has_tracking_number: bool,
) -> OrderPermissions:
    paid = payment_status == PaymentStatus.PAID

    return OrderPermissions(
        can_mark_as_processing=status == OrderStatus.PENDING and paid,
        can_mark_as_paid=(
            payment_status == PaymentStatus.PENDING
            and status in (OrderStatus.PENDING, OrderStatus.PROCESSING)
        ),
        can_mark_as_shipped=status == OrderStatus.PROCESSING and paid,
        can_mark_as_delivered=status == OrderStatus.SHIPPED,
        can_revert_to_processing=status == OrderStatus.SHIPPED,
        can_update_tracking=(
            status in (OrderStatus.SHIPPED, OrderStatus.DELIVERED)
            and bool(has_tracking_number)
        ),
        can_cancel=(
            status in (OrderStatus.PENDING, OrderStatus.PROCESSING)
            and status != OrderStatus.CANCELLED
        ),
        can_refund=(
            status
            in (OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.DELIVERED)
            and paid
        ),
        can_mark_as_returned=fulfillment_status
        in (FulfillmentStatus.SHIPPED, FulfillmentStatus.DELIVERED),
    )


def permissions_for(order) -> OrderPermissions:
    return order_permissions(
        order.status,
        order.payment_status,
        order.fulfillment_status,
        bool((order.tracking_number or "").strip()),
    )
