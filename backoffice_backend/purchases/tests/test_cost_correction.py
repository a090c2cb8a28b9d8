# purchases/tests/test_cost_correction.py

from __future__ import annotations

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from products.models import InventoryLot
from products.tests.test_lot_ledger import make_variant
from purchases.models import PurchaseOrder
from purchases.services.arrival_service import transition_purchase_order
from purchases.services.cost_correction import CostCorrectionError, recompute_lot_cost
from purchases.tests.test_arrival import make_order
from sales.models import LotConsumption, Sale
from sales.services.cost_reconciliation import reconcile_sale_costs
from sales.services.sale_input import SaleInput, SaleLineInput
from sales.services.sale_saga import record_sale


class CostCorrectionTests(TestCase):
    """
    GUARANTEES:
    - a late duty cost reprices every lot of the order and clears cost_pending_tax
    - consumption snapshots are never rewritten
    - sales that consumed repriced lots are flagged cogs_pending
    - manual reconciliation re-derives COGS from the repriced lots
    """

    def setUp(self):
        self.variant = make_variant(sku="CC-1")
        self.order = make_order(
            variants=[(self.variant, 10, "5.00", "BRL", "1")],
            freight="10.00",
            extra_fees="0.00",
            source=PurchaseOrder.SOURCE_INTERNATIONAL,
            shipping_mode=PurchaseOrder.SHIPPING_OFFLINE,
        )
        transition_purchase_order(purchase_order_id=self.order.id, new_status=PurchaseOrder.STATUS_ARRIVED)
        self.lot = InventoryLot.objects.get(purchase_order=self.order)

    def _sell(self, quantity):
        result = record_sale(
            data=SaleInput(
                items=(
                    SaleLineInput(
                        product_label="",
                        quantity=quantity,
                        unit_price=Decimal("20.00"),
                        variant_id=self.variant.id,
                    ),
                ),
                payment_fee=Decimal("0.00"),
            )
        )
        self.assertTrue(result.committed, result.as_dict())
        return Sale.objects.get(id=result.sale_id)

    def test_lot_starts_cost_pending(self):
        self.assertTrue(self.lot.cost_pending_tax)
        self.assertEqual(self.lot.unit_cost, Decimal("6.0000"))

    def test_duty_reprices_lots_and_flags_sales(self):
        sale = self._sell(2)
        self.assertTrue(sale.cogs_pending)
        self.assertEqual(sale.product_cost, Decimal("12.00"))

        result = recompute_lot_cost(purchase_order_id=self.order.id, new_duty_cost="20.00")

        self.assertEqual(result["lots_repriced"], 1)
        self.assertEqual(result["sales_flagged"], 1)

        self.lot.refresh_from_db()
        self.assertEqual(self.lot.unit_cost, Decimal("8.0000"))
        self.assertFalse(self.lot.cost_pending_tax)

        snapshot = LotConsumption.objects.get(sale_item__sale=sale)
        self.assertEqual(snapshot.unit_cost_at_consumption, Decimal("6.0000"))

    def test_reconcile_after_duty_clears_pending(self):
        sale = self._sell(2)
        recompute_lot_cost(purchase_order_id=self.order.id, new_duty_cost="20.00")

        summary = reconcile_sale_costs(sale_id=sale.id)

        sale.refresh_from_db()
        self.assertEqual(sale.product_cost, Decimal("16.00"))
        self.assertFalse(sale.cogs_pending)
        self.assertEqual(sale.net_profit, sale.expected_net_profit())
        self.assertEqual(summary["previous_product_cost"], "12.00")
        self.assertEqual(sale.items.get().cost_amount, Decimal("16.00"))

    def test_reconcile_before_duty_keeps_pending(self):
        sale = self._sell(1)

        reconcile_sale_costs(sale_id=sale.id)

        sale.refresh_from_db()
        self.assertTrue(sale.cogs_pending)

    def test_negative_duty_is_rejected(self):
        with self.assertRaises(CostCorrectionError):
            recompute_lot_cost(purchase_order_id=self.order.id, new_duty_cost="-1")

    def test_duty_on_arrived_order_without_lots_creates_them(self):
        other = make_order(
            variants=[(make_variant(sku="CC-2"), 5, "2.00", "BRL", "1")],
            reference="PO-NOLOTS",
            freight="0.00",
            extra_fees="0.00",
            status=PurchaseOrder.STATUS_ARRIVED,
            arrived_at=timezone.now(),
        )

        result = recompute_lot_cost(purchase_order_id=other.id, new_duty_cost="5.00")

        self.assertEqual(result["lots_created"], 1)
        self.assertEqual(InventoryLot.objects.get(purchase_order=other).unit_cost, Decimal("3.0000"))

    def test_duty_on_open_order_only_stores_duty(self):
        draft = make_order(
            variants=[(make_variant(sku="CC-3"), 1, "2.00", "BRL", "1")],
            reference="PO-DRAFT",
        )

        result = recompute_lot_cost(purchase_order_id=draft.id, new_duty_cost="3.00")

        draft.refresh_from_db()
        self.assertEqual(draft.duty_cost, Decimal("3.00"))
        self.assertEqual(result["lots_created"], 0)
        self.assertFalse(InventoryLot.objects.filter(purchase_order=draft).exists())


class DutyCostApiTests(TestCase):
    """
    GUARANTEES:
    - POST .../duty-cost/ reprices the order's lots
    - a negative duty is a validation error
    """

    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(user=get_user_model().objects.create_user(username="buyer", password="pass"))
        self.order = make_order(
            variants=[(make_variant(sku="CC-API"), 4, "5.00", "BRL", "1")],
            freight="0.00",
            extra_fees="0.00",
            source=PurchaseOrder.SOURCE_INTERNATIONAL,
            shipping_mode=PurchaseOrder.SHIPPING_OFFLINE,
        )
        transition_purchase_order(purchase_order_id=self.order.id, new_status=PurchaseOrder.STATUS_ARRIVED)

    def test_duty_cost_endpoint(self):
        res = self.client.post(
            f"/api/purchases/orders/{self.order.id}/duty-cost/", {"duty_cost": "8.00"}, format="json"
        )

        self.assertEqual(res.status_code, 200, res.data)
        self.assertEqual(res.data["lots_repriced"], 1)
        lot = InventoryLot.objects.get(purchase_order=self.order)
        self.assertEqual(lot.unit_cost, Decimal("7.0000"))
        self.assertFalse(lot.cost_pending_tax)

    def test_negative_duty_is_400(self):
        res = self.client.post(
            f"/api/purchases/orders/{self.order.id}/duty-cost/", {"duty_cost": "-1.00"}, format="json"
        )

        self.assertEqual(res.status_code, 400)
