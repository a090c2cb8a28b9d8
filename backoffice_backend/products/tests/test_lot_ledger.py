# products/tests/test_lot_ledger.py

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone

from products.models import InventoryLot, Product, ProductVariant
from products.services.lot_ledger import LotLedgerError, LotRestoreError, lot_ledger


def make_variant(sku="TEE-BLK-M", price="50.00"):
    product = Product.objects.create(sku=f"P-{sku}", name="Basic Tee")
    return ProductVariant.objects.create(
        product=product,
        sku=sku,
        label="Black",
        size="M",
        unit_price=Decimal(price),
    )


class LotLedgerFifoTests(TestCase):
    """
    GUARANTEES:
    - consume() draws oldest-received lots first
    - a quantity smaller than the oldest remainder never touches newer lots
    - a shortfall is reported (quantity_unfulfilled), never raised
    - restore() is the exact inverse of a recorded consumption
    """

    def setUp(self):
        self.variant = make_variant()
        now = timezone.now()
        self.t1 = lot_ledger.insert_lot(
            variant=self.variant, quantity=5, unit_cost="10.00", received_at=now - timedelta(days=3)
        )
        self.t2 = lot_ledger.insert_lot(
            variant=self.variant, quantity=5, unit_cost="12.00", received_at=now - timedelta(days=2)
        )
        self.t3 = lot_ledger.insert_lot(
            variant=self.variant, quantity=5, unit_cost="15.00", received_at=now - timedelta(days=1)
        )

    def _remaining(self, lot):
        return InventoryLot.objects.get(pk=lot.pk).quantity_remaining

    def test_small_quantity_draws_only_from_oldest_lot(self):
        plan = lot_ledger.consume(variant=self.variant, quantity=3)

        self.assertEqual([line.lot_id for line in plan.lines], [self.t1.pk])
        self.assertEqual(self._remaining(self.t1), 2)
        self.assertEqual(self._remaining(self.t2), 5)
        self.assertEqual(self._remaining(self.t3), 5)
        self.assertEqual(plan.total_cost, Decimal("30.0000"))

    def test_large_quantity_spills_into_newer_lots_in_order(self):
        plan = lot_ledger.consume(variant=self.variant, quantity=12)

        self.assertEqual(
            [(line.lot_id, line.quantity) for line in plan.lines],
            [(self.t1.pk, 5), (self.t2.pk, 5), (self.t3.pk, 2)],
        )
        self.assertEqual(plan.total_cost, Decimal("5") * 10 + Decimal("5") * 12 + Decimal("2") * 15)
        self.assertFalse(plan.is_short)

    def test_shortfall_is_reported_not_raised(self):
        plan = lot_ledger.consume(variant=self.variant, quantity=18)

        self.assertEqual(plan.quantity_consumed, 15)
        self.assertEqual(plan.quantity_unfulfilled, 3)
        self.assertTrue(plan.is_short)
        self.assertEqual(lot_ledger.available_quantity(variant=self.variant), 0)

    def test_consume_then_restore_round_trips(self):
        before = {lot.pk: self._remaining(lot) for lot in (self.t1, self.t2, self.t3)}

        plan = lot_ledger.consume(variant=self.variant, quantity=7)
        for line in plan.lines:
            lot_ledger.restore(lot_id=line.lot_id, quantity=line.quantity)

        after = {lot.pk: self._remaining(lot) for lot in (self.t1, self.t2, self.t3)}
        self.assertEqual(before, after)

    def test_restore_cannot_exceed_quantity_received(self):
        with self.assertRaises(LotRestoreError):
            lot_ledger.restore(lot_id=self.t1.pk, quantity=1)

        self.assertEqual(self._remaining(self.t1), 5)

    def test_cost_pending_lot_marks_plan(self):
        pending = make_variant(sku="CAP-NVY")
        lot_ledger.insert_lot(variant=pending, quantity=2, unit_cost="8.00", cost_pending_tax=True)

        plan = lot_ledger.consume(variant=pending, quantity=1)

        self.assertTrue(plan.cost_pending)


class LotLedgerMaintenanceTests(TestCase):
    """
    GUARANTEES:
    - insert_lot rejects non-positive quantities
    - restore_by_variant refills lots oldest-first and reports unplaced units
    - reprice_lot changes unit cost and clears the pending flag
    """

    def setUp(self):
        self.variant = make_variant(sku="HOOD-GRY-M")
        now = timezone.now()
        self.old = lot_ledger.insert_lot(
            variant=self.variant, quantity=4, unit_cost="20.00", received_at=now - timedelta(days=2)
        )
        self.new = lot_ledger.insert_lot(
            variant=self.variant, quantity=4, unit_cost="22.00", received_at=now - timedelta(days=1)
        )

    def test_insert_rejects_zero_quantity(self):
        with self.assertRaises(LotLedgerError):
            lot_ledger.insert_lot(variant=self.variant, quantity=0, unit_cost="1.00")

    def test_restore_by_variant_refills_oldest_first(self):
        lot_ledger.consume(variant=self.variant, quantity=6)

        restored, unplaced = lot_ledger.restore_by_variant(variant=self.variant, quantity=5)

        self.assertEqual(unplaced, 0)
        self.assertEqual(restored[0].lot_id, self.old.pk)
        self.assertEqual(InventoryLot.objects.get(pk=self.old.pk).quantity_remaining, 4)
        self.assertEqual(InventoryLot.objects.get(pk=self.new.pk).quantity_remaining, 3)

    def test_restore_by_variant_reports_units_without_room(self):
        lot_ledger.consume(variant=self.variant, quantity=2)

        restored, unplaced = lot_ledger.restore_by_variant(variant=self.variant, quantity=3)

        self.assertEqual(sum(r.quantity for r in restored), 2)
        self.assertEqual(unplaced, 1)

    def test_reprice_lot_updates_cost_and_flag(self):
        pending = lot_ledger.insert_lot(
            variant=self.variant, quantity=1, unit_cost="5.00", cost_pending_tax=True
        )

        lot_ledger.reprice_lot(lot_id=pending.pk, unit_cost="7.12346")

        pending.refresh_from_db()
        self.assertEqual(pending.unit_cost, Decimal("7.1235"))
        self.assertFalse(pending.cost_pending_tax)
