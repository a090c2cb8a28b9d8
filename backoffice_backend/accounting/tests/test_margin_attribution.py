# accounting/tests/test_margin_attribution.py

from __future__ import annotations

from datetime import date
from decimal import Decimal
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import TestCase
from rest_framework.test import APIClient

from accounting.services.exceptions import InvalidReportPeriod
from accounting.services.margin_attribution import (
    margin_by_customer,
    margin_by_product,
    margin_by_purchase_order,
    parse_period,
)
from products.tests.test_lot_ledger import make_variant
from purchases.models import PurchaseOrder
from purchases.services.arrival_service import transition_purchase_order
from purchases.tests.test_arrival import make_order
from sales.models import Customer, LotConsumption, Sale
from sales.services.sale_input import SaleInput, SaleLineInput
from sales.services.sale_saga import record_sale
from sales.tests.factories import SaleFixtureMixin

User = get_user_model()


class MarginByProductTests(SaleFixtureMixin, TestCase):
    """
    GUARANTEES:
    - revenue is the line gross scaled by the sale's discount factor
    - fee, shipping and fixed costs are apportioned by gross share
    - COGS comes from the consumption snapshots
    - the attributed profits add up to the sale's net profit
    """

    def setUp(self):
        super().setUp()
        self.customer = Customer.objects.create(name="Ana")
        record_sale(data=self.sale_input(customer_id=self.customer.id, sale_date=date(2026, 3, 10)))

    def test_apportioned_rows(self):
        rows = margin_by_product()

        gift, tee = rows
        self.assertEqual(gift["product_label"], "Gift wrap")
        self.assertEqual(gift["revenue"], 27.0)
        self.assertEqual(gift["fees"], 1.5)
        self.assertEqual(gift["shipping"], 0.9)
        self.assertEqual(gift["fixed_costs"], 0.6)
        self.assertEqual(gift["cogs"], 0.0)
        self.assertEqual(gift["profit"], 24.0)

        self.assertEqual((tee["product_label"], tee["variant_label"]), ("Basic Tee", "Black"))
        self.assertEqual(tee["quantity"], 7)
        self.assertEqual(tee["revenue"], 63.0)
        self.assertEqual(tee["cogs"], 74.0)
        self.assertEqual(tee["profit"], -18.0)
        self.assertEqual(tee["margin_percent"], -28.57)

        self.assertEqual(gift["profit"] + tee["profit"], 6.0)

    def test_lines_without_audit_rows_use_booked_cost(self):
        LotConsumption.objects.all().delete()

        tee = next(r for r in margin_by_product() if r["product_label"] == "Basic Tee")

        self.assertEqual(tee["cogs"], 74.0)
        self.assertEqual(tee["profit"], -18.0)

    def test_period_excludes_other_dates(self):
        self.assertEqual(margin_by_product(date_from="2026-04-01"), [])
        self.assertEqual(len(margin_by_product(date_from="2026-03-10", date_to="2026-03-10")), 2)

    def test_by_customer(self):
        record_sale(data=self.sale_input(quantity=1, extra_line=False, fixed_cost_pool_ids=()))

        rows = margin_by_customer()

        self.assertEqual(len(rows), 1)
        row = rows[0]
        self.assertEqual(row["customer_name"], "Ana")
        self.assertEqual(row["sales_count"], 1)
        self.assertEqual(row["revenue"], 90.0)
        self.assertEqual(row["profit"], 6.0)
        self.assertEqual(row["average_margin_percent"], 6.67)
        self.assertEqual(row["average_ticket"], 90.0)


class MarginByPurchaseOrderTests(TestCase):
    """
    GUARANTEES:
    - revenue and COGS are traced back to the order through consumed lots
    - units sold = received - remaining
    """

    def setUp(self):
        self.variant = make_variant(sku="MPO-1")
        self.order = make_order(
            variants=[(self.variant, 10, "5.00", "BRL", "1")],
            freight="0.00",
            extra_fees="0.00",
        )
        transition_purchase_order(purchase_order_id=self.order.id, new_status=PurchaseOrder.STATUS_ARRIVED)
        record_sale(
            data=SaleInput(
                items=(
                    SaleLineInput(
                        product_label="",
                        quantity=4,
                        unit_price=Decimal("20.00"),
                        variant_id=self.variant.id,
                    ),
                ),
                payment_fee=Decimal("0.00"),
            )
        )

    def test_order_row(self):
        rows = margin_by_purchase_order()

        row = next(r for r in rows if r["purchase_order_id"] == str(self.order.id))
        self.assertEqual(row["total_cost"], 50.0)
        self.assertEqual(row["units_ordered"], 10)
        self.assertEqual(row["units_received"], 10)
        self.assertEqual(row["units_sold"], 4)
        self.assertEqual(row["units_in_stock"], 6)
        self.assertEqual(row["revenue"], 80.0)
        self.assertEqual(row["cogs"], 20.0)
        self.assertEqual(row["profit"], 60.0)
        self.assertEqual(row["margin_percent"], 75.0)
        self.assertEqual(row["sell_through_percent"], 40.0)
        self.assertFalse(row["is_fully_sold"])


class ReportPeriodTests(TestCase):
    def test_inverted_period_is_rejected(self):
        with self.assertRaises(InvalidReportPeriod):
            parse_period("2026-02-01", "2026-01-01")

    def test_malformed_date_is_rejected(self):
        with self.assertRaises(InvalidReportPeriod):
            parse_period("01/02/2026", None)

    def test_open_period(self):
        self.assertEqual(parse_period(None, ""), (None, None))


class MarginReportApiTests(SaleFixtureMixin, TestCase):
    """
    GUARANTEES:
    - each report answers {"period", "count", "results"}
    - a bad period answers 400
    """

    def setUp(self):
        super().setUp()
        self.client = APIClient()
        self.client.force_authenticate(user=User.objects.create_user(username="owner", password="pass"))
        record_sale(data=self.sale_input())

    def test_product_report(self):
        res = self.client.get("/api/accounting/reports/margin-by-product/")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["count"], 2)
        self.assertEqual(res.data["period"], {"date_from": None, "date_to": None})

    def test_customer_and_purchase_order_reports(self):
        for url in (
            "/api/accounting/reports/margin-by-customer/",
            "/api/accounting/reports/margin-by-purchase-order/",
        ):
            res = self.client.get(url)
            self.assertEqual(res.status_code, 200, url)
            self.assertEqual(res.data["count"], 0, url)

    def test_bad_period_returns_400(self):
        res = self.client.get(
            "/api/accounting/reports/margin-by-product/",
            {"date_from": "2026-05-01", "date_to": "2026-04-01"},
        )

        self.assertEqual(res.status_code, 400)


class ValidateSaleMarginsCommandTests(SaleFixtureMixin, TestCase):
    """
    GUARANTEES:
    - a saga-recorded sale passes every check
    - a tampered net_profit fails the run under --strict
    """

    def setUp(self):
        super().setUp()
        self.sale_id = record_sale(data=self.sale_input()).sale_id

    def test_clean_sale_passes(self):
        out = StringIO()
        call_command("validate_sale_margins", "--strict", stdout=out, stderr=StringIO())

        self.assertIn("VALIDATION PASSED", out.getvalue())

    def test_broken_identity_fails_strict(self):
        Sale.objects.filter(id=self.sale_id).update(net_profit=Decimal("99.00"))
        err = StringIO()

        with self.assertRaises(SystemExit):
            call_command("validate_sale_margins", "--strict", stdout=StringIO(), stderr=err)

        self.assertIn("Net profit identity broken", err.getvalue())
