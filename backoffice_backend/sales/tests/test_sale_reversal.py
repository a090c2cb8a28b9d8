# sales/tests/test_sale_reversal.py

from __future__ import annotations

from django.test import TestCase

from accounting.models import SaleFixedCost
from products.models import InventoryLot, StockLedgerEntry
from sales.models import LotConsumption, Sale, SaleLineItem
from sales.services.exceptions import SaleNotFound
from sales.services.sale_reversal import delete_sale
from sales.services.sale_saga import record_sale
from sales.tests.factories import SaleFixtureMixin


class SaleDeletionTests(SaleFixtureMixin, TestCase):
    """
    GUARANTEES:
    - deletion returns every consumed unit to the lot it came from
    - audit rows, OUT ledger entries, line items and the header are removed
    - fixed cost units drawn by the sale are released
    """

    def setUp(self):
        super().setUp()
        result = record_sale(data=self.sale_input())
        self.assertTrue(result.committed, result.as_dict())
        self.sale_id = result.sale_id

    def test_delete_restores_lots_and_removes_records(self):
        result = delete_sale(sale_id=self.sale_id)

        self.assertTrue(result.is_consistent)
        self.assertEqual(result.consumption_rows_deleted, 2)
        self.assertEqual(result.ledger_entries_deleted, 1)
        self.assertEqual(sum(r.quantity for r in result.lots_restored), 7)

        self.assertEqual(self.remaining(self.lot_a), 5)
        self.assertEqual(self.remaining(self.lot_b), 5)

        self.assertFalse(Sale.objects.filter(id=self.sale_id).exists())
        self.assertFalse(SaleLineItem.objects.exists())
        self.assertFalse(LotConsumption.objects.exists())
        self.assertFalse(StockLedgerEntry.objects.filter(reference_id=self.sale_id).exists())

    def test_delete_releases_fixed_costs(self):
        result = delete_sale(sale_id=self.sale_id)

        self.assertEqual(result.fixed_cost_units_released, 1)
        self.pool.refresh_from_db()
        self.assertEqual(self.pool.remaining_units, 10)
        self.assertFalse(SaleFixedCost.objects.exists())

    def test_delete_without_audit_rows_uses_legacy_restore(self):
        LotConsumption.objects.filter(sale_item__sale_id=self.sale_id).delete()

        result = delete_sale(sale_id=self.sale_id)

        self.assertEqual(result.legacy_variants, [self.variant.id])
        self.assertFalse(result.is_consistent)
        self.assertEqual(self.remaining(self.lot_a), 5)
        self.assertEqual(self.remaining(self.lot_b), 5)
        self.assertEqual(result.as_dict()["units_restored"], 7)

    def test_restore_overflow_is_flagged_not_raised(self):
        InventoryLot.objects.filter(pk=self.lot_a.pk).update(quantity_remaining=5)

        result = delete_sale(sale_id=self.sale_id)

        self.assertFalse(result.is_consistent)
        self.assertEqual(len(result.inconsistencies), 1)
        self.assertEqual(self.remaining(self.lot_b), 5)
        self.assertFalse(Sale.objects.filter(id=self.sale_id).exists())

    def test_delete_unknown_sale(self):
        with self.assertRaises(SaleNotFound):
            delete_sale(sale_id="00000000-0000-0000-0000-000000000000")


class PreorderDeletionTests(SaleFixtureMixin, TestCase):
    """
    GUARANTEES:
    - deleting a preorder touches no lot
    """

    def test_delete_preorder(self):
        sale_id = record_sale(data=self.sale_input(is_preorder=True)).sale_id

        result = delete_sale(sale_id=sale_id)

        self.assertTrue(result.is_consistent)
        self.assertEqual(result.lots_restored, [])
        self.assertEqual(self.remaining(self.lot_a), 5)
        self.assertEqual(result.fixed_cost_units_released, 0)
