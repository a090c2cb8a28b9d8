# products/tests/test_stock_audit.py

from __future__ import annotations

from io import StringIO
from uuid import uuid4

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import TestCase
from rest_framework.test import APIClient

from products.models import StockLedgerEntry
from products.services.lot_ledger import lot_ledger
from products.services.stock_audit import audit_stock
from products.services.stock_ledger import (
    record_purchase_in,
    record_sale_out,
    variant_balance,
)
from products.tests.test_lot_ledger import make_variant

User = get_user_model()


class StockAuditTests(TestCase):
    """
    GUARANTEES:
    - matching lots and ledger produce no discrepancy
    - a lot without an IN ledger entry is reported as a discrepancy
    - the ledger balance is in - out ± adjustment
    """

    def setUp(self):
        self.variant = make_variant(sku="AUD-1")
        self.lot = lot_ledger.insert_lot(variant=self.variant, quantity=10, unit_cost="3.00")

    def _row(self, report):
        return next(r for r in report["variants"] if r["variant_id"] == str(self.variant.id))

    def test_lot_without_ledger_entry_is_a_discrepancy(self):
        report = audit_stock()
        row = self._row(report)

        self.assertEqual(row["lots_quantity_remaining"], 10)
        self.assertEqual(row["ledger_balance"], 0)
        self.assertEqual(row["discrepancy"], 10)
        self.assertEqual(report["summary"]["variants_with_discrepancies"], 1)

    def test_matching_views_have_no_discrepancy(self):
        record_purchase_in(variant=self.variant, quantity=10, purchase_order_id=uuid4())
        lot_ledger.consume(variant=self.variant, quantity=4)
        record_sale_out(variant=self.variant, quantity=4, sale_id=uuid4())

        report = audit_stock()
        row = self._row(report)

        self.assertEqual(row["discrepancy"], 0)
        self.assertFalse(row["has_discrepancy"])
        self.assertEqual(variant_balance(variant=self.variant), 6)
        self.assertEqual(report["inconsistent_lots"], [])

    def test_audit_command_strict_exits_non_zero(self):
        out, err = StringIO(), StringIO()
        with self.assertRaises(SystemExit):
            call_command("audit_stock", "--strict", stdout=out, stderr=err)

        self.assertIn("AUDIT FOUND ISSUES", err.getvalue())


class StockApiTests(TestCase):
    """
    GUARANTEES:
    - manual adjustments write a signed ADJUSTMENT ledger entry
    - adjusting an unknown variant returns 404
    - the stock audit endpoint exposes the audit report
    """

    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(username="stock", password="pass")
        self.client.force_authenticate(user=self.user)
        self.variant = make_variant(sku="API-1")

    def test_adjustment_creates_signed_entry(self):
        res = self.client.post(
            "/api/products/stock-adjustments/",
            {"variant_id": str(self.variant.id), "quantity": -2, "note": "damaged"},
            format="json",
        )

        self.assertEqual(res.status_code, 201, res.data)
        entry = StockLedgerEntry.objects.get(variant=self.variant)
        self.assertEqual(entry.entry_type, StockLedgerEntry.EntryType.ADJUSTMENT)
        self.assertEqual(entry.quantity, -2)

    def test_adjustment_unknown_variant_returns_404(self):
        res = self.client.post(
            "/api/products/stock-adjustments/",
            {"variant_id": str(uuid4()), "quantity": 1},
            format="json",
        )

        self.assertEqual(res.status_code, 404)

    def test_stock_audit_endpoint(self):
        lot_ledger.insert_lot(variant=self.variant, quantity=3, unit_cost="1.00")

        res = self.client.get("/api/products/stock-audit/")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["summary"]["variants_with_discrepancies"], 1)

    def test_requires_authentication(self):
        res = APIClient().get("/api/products/stock-audit/")
        self.assertEqual(res.status_code, 401)
