# products/tests/test_stock.py

from unittest.mock import patch

from django.core.exceptions import ValidationError
from django.db import transaction
from django.test import TestCase

from orders.models import Refund
from orders.tests.helpers import make_order, make_sku
from products.models import StockMovement
from products.services.inventory import (
    InsufficientStockError,
    release_stock,
    reserve_stock,
    restock_for_refund,
)


class InventoryServiceTests(TestCase):
    """
    Inventory ledger tests.

    GUARANTEES:
    - Reservations never drive stock below zero
    - Every inventory change writes exactly one StockMovement row
    - Inventory helpers refuse to run outside a transaction
    - Ledger rows are immutable
    """

    def setUp(self):
        self.sku = make_sku(inventory=5)
        self.order = make_order(lines=[(self.sku, 1)])

    # ======================================================
    # RESERVE
    # ======================================================

    def test_reserve_decrements_inventory_and_writes_ledger(self):
        with transaction.atomic():
            reserve_stock(sku_id=self.sku.id, quantity=3, order=self.order)

        self.sku.refresh_from_db()
        self.assertEqual(self.sku.inventory, 2)

        movement = StockMovement.objects.get(sku=self.sku)
        self.assertEqual(movement.reason, StockMovement.Reason.RESERVATION)
        self.assertEqual(movement.movement_type, StockMovement.MovementType.OUT)
        self.assertEqual(movement.quantity, 3)
        self.assertEqual(movement.order_id, self.order.id)

    def test_reserve_more_than_available_is_refused(self):
        with self.assertRaises(InsufficientStockError):
            with transaction.atomic():
                reserve_stock(sku_id=self.sku.id, quantity=6, order=self.order)

        self.sku.refresh_from_db()
        self.assertEqual(self.sku.inventory, 5)
        self.assertFalse(StockMovement.objects.filter(sku=self.sku).exists())

    def test_reserve_exactly_remaining_stock_reaches_zero(self):
        with transaction.atomic():
            reserve_stock(sku_id=self.sku.id, quantity=5, order=self.order)

        self.sku.refresh_from_db()
        self.assertEqual(self.sku.inventory, 0)

    def test_reserve_rejects_non_positive_quantity(self):
        for bad in (0, -1, "abc", None, True):
            with self.assertRaises(ValidationError):
                with transaction.atomic():
                    reserve_stock(sku_id=self.sku.id, quantity=bad, order=self.order)

    # ======================================================
    # RELEASE / RESTOCK
    # ======================================================

    def test_release_returns_units(self):
        with transaction.atomic():
            reserve_stock(sku_id=self.sku.id, quantity=2, order=self.order)
            release_stock(sku_id=self.sku.id, quantity=2, order=self.order)

        self.sku.refresh_from_db()
        self.assertEqual(self.sku.inventory, 5)
        self.assertEqual(
            StockMovement.objects.filter(reason=StockMovement.Reason.RELEASE).count(), 1
        )

    def test_restock_for_refund_links_refund_and_order(self):
        refund = Refund.objects.create(order=self.order, amount=int(self.sku.price))

        with transaction.atomic():
            restock_for_refund(sku_id=self.sku.id, quantity=1, refund=refund)

        self.sku.refresh_from_db()
        self.assertEqual(self.sku.inventory, 6)

        movement = StockMovement.objects.get(reason=StockMovement.Reason.REFUND_RESTOCK)
        self.assertEqual(movement.refund_id, refund.id)
        self.assertEqual(movement.order_id, self.order.id)

    def test_restock_for_missing_sku_is_skipped(self):
        refund = Refund.objects.create(order=self.order, amount=int(self.sku.price))
        missing_id = "00000000-0000-0000-0000-000000000000"

        with transaction.atomic():
            restock_for_refund(sku_id=missing_id, quantity=1, refund=refund)

        self.assertFalse(
            StockMovement.objects.filter(reason=StockMovement.Reason.REFUND_RESTOCK).exists()
        )

    # ======================================================
    # GUARDS
    # ======================================================

    def test_inventory_changes_require_transaction(self):
        # TestCase wraps every test in atomic(); fake a connection outside one.
        with patch("products.services.inventory.transaction.get_connection") as get_conn:
            get_conn.return_value.in_atomic_block = False
            with self.assertRaises(RuntimeError):
                reserve_stock(sku_id=self.sku.id, quantity=1, order=self.order)

        self.sku.refresh_from_db()
        self.assertEqual(self.sku.inventory, 5)

    def test_stock_movement_is_immutable(self):
        with transaction.atomic():
            reserve_stock(sku_id=self.sku.id, quantity=1, order=self.order)
        movement = StockMovement.objects.get(sku=self.sku)

        movement.quantity = 99
        with self.assertRaises(ValidationError):
            movement.save()
        with self.assertRaises(ValidationError):
            movement.delete()

    def test_movement_direction_must_match_reason(self):
        with self.assertRaises(ValidationError):
            StockMovement.objects.create(
                sku=self.sku,
                movement_type=StockMovement.MovementType.IN,
                reason=StockMovement.Reason.RESERVATION,
                quantity=1,
                order=self.order,
            )
