# purchases/tests/test_arrival.py

from __future__ import annotations

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from products.models import InventoryLot, StockLedgerEntry
from products.tests.test_lot_ledger import make_variant
from purchases.models import PurchaseOrder, PurchaseOrderItem, Supplier
from purchases.services.arrival_service import (
    PurchaseArrivalError,
    compute_landed_unit_costs,
    post_purchase_arrival,
    repair_purchase_inventory,
    transition_purchase_order,
)

User = get_user_model()


def make_order(*, variants, freight="20.00", extra_fees="10.00", duty_cost=None, **fields):
    """
    variants: [(variant, quantity, unit_cost, currency, exchange_rate)]
    """
    order = PurchaseOrder.objects.create(
        supplier=Supplier.objects.create(name="Acme"),
        reference=fields.pop("reference", "PO-1"),
        freight=Decimal(freight),
        extra_fees=Decimal(extra_fees),
        duty_cost=Decimal(duty_cost) if duty_cost is not None else None,
        **fields,
    )
    for variant, qty, unit_cost, currency, rate in variants:
        PurchaseOrderItem.objects.create(
            purchase_order=order,
            variant=variant,
            quantity=qty,
            unit_cost=Decimal(unit_cost),
            currency=currency,
            exchange_rate=Decimal(rate),
        )
    return order


class LandedCostTests(TestCase):
    """
    GUARANTEES:
    - shared costs (freight + fees + duty) are spread evenly over all units
    - foreign-currency lines are converted with their exchange rate
    """

    def test_landed_unit_cost(self):
        a = make_variant(sku="LC-A")
        b = make_variant(sku="LC-B")
        order = make_order(
            variants=[
                (a, 10, "5.00", "BRL", "1"),
                (b, 10, "2.00", "USD", "5.00"),
            ]
        )

        costs = compute_landed_unit_costs(purchase_order=order)
        by_variant = {it.variant_id: costs[it.id] for it in order.items.all()}

        self.assertEqual(by_variant[a.id], Decimal("6.50"))
        self.assertEqual(by_variant[b.id], Decimal("11.50"))


class PurchaseArrivalTests(TestCase):
    """
    GUARANTEES:
    - reaching "arrived" creates one lot and one IN ledger entry per stocked line
    - arrival is idempotent (a second post creates nothing)
    - offline international orders with unknown duty produce cost-pending lots
    - transitions are forward-only
    """

    def setUp(self):
        self.variant = make_variant(sku="ARR-1")
        self.order = make_order(variants=[(self.variant, 8, "10.00", "BRL", "1")], freight="8.00", extra_fees="0.00")

    def test_transition_to_arrived_posts_lots_once(self):
        result = transition_purchase_order(
            purchase_order_id=self.order.id, new_status=PurchaseOrder.STATUS_ARRIVED
        )
        self.assertEqual(result["lots_created"], 1)

        again = post_purchase_arrival(purchase_order_id=self.order.id)
        self.assertEqual(again["lots_created"], 0)

        lot = InventoryLot.objects.get(purchase_order=self.order)
        self.assertEqual(lot.quantity_received, 8)
        self.assertEqual(lot.quantity_remaining, 8)
        self.assertEqual(lot.unit_cost, Decimal("11.0000"))
        self.assertFalse(lot.cost_pending_tax)

        entries = StockLedgerEntry.objects.filter(reference_id=self.order.id)
        self.assertEqual(entries.count(), 1)
        self.assertEqual(entries.get().entry_type, StockLedgerEntry.EntryType.IN)

        self.order.refresh_from_db()
        self.assertIsNotNone(self.order.stock_posted_at)

    def test_backward_transition_is_rejected(self):
        transition_purchase_order(purchase_order_id=self.order.id, new_status=PurchaseOrder.STATUS_SHIPPED)

        with self.assertRaises(PurchaseArrivalError):
            transition_purchase_order(purchase_order_id=self.order.id, new_status=PurchaseOrder.STATUS_BOUGHT)

    def test_post_arrival_requires_arrived_status(self):
        with self.assertRaises(PurchaseArrivalError):
            post_purchase_arrival(purchase_order_id=self.order.id)

    def test_offline_international_order_without_duty_is_cost_pending(self):
        order = make_order(
            variants=[(make_variant(sku="ARR-2"), 4, "10.00", "BRL", "1")],
            reference="PO-INTL",
            source=PurchaseOrder.SOURCE_INTERNATIONAL,
            shipping_mode=PurchaseOrder.SHIPPING_OFFLINE,
        )

        result = transition_purchase_order(
            purchase_order_id=order.id, new_status=PurchaseOrder.STATUS_ARRIVED
        )

        self.assertTrue(result["cost_pending_tax"])
        self.assertTrue(InventoryLot.objects.get(purchase_order=order).cost_pending_tax)

    def test_remittance_order_is_not_cost_pending(self):
        order = make_order(
            variants=[(make_variant(sku="ARR-3"), 4, "10.00", "BRL", "1")],
            reference="PO-REM",
            source=PurchaseOrder.SOURCE_INTERNATIONAL,
            shipping_mode=PurchaseOrder.SHIPPING_REMITTANCE,
        )

        transition_purchase_order(purchase_order_id=order.id, new_status=PurchaseOrder.STATUS_ARRIVED)

        self.assertFalse(InventoryLot.objects.get(purchase_order=order).cost_pending_tax)

    def test_repair_recreates_missing_lots_and_entries(self):
        order = make_order(
            variants=[(make_variant(sku="ARR-4"), 3, "4.00", "BRL", "1")],
            reference="PO-LEGACY",
            status=PurchaseOrder.STATUS_ARRIVED,
            arrived_at=timezone.now(),
        )

        result = repair_purchase_inventory(purchase_order_id=order.id)

        self.assertEqual(result["lots_created"], 1)
        self.assertEqual(result["ledger_entries_created"], 1)

        again = repair_purchase_inventory(purchase_order_id=order.id)
        self.assertEqual(again["lots_created"], 0)
        self.assertEqual(again["ledger_entries_created"], 0)


class PurchaseApiTests(TestCase):
    """
    GUARANTEES:
    - a purchase order is created with its items in one request
    - POST .../status/ to "arrived" creates lots
    - an unknown variant rolls the whole order back
    """

    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(user=User.objects.create_user(username="buyer", password="pass"))
        self.variant = make_variant(sku="API-PO")

    def test_create_and_arrive(self):
        res = self.client.post(
            "/api/purchases/orders/",
            {
                "reference": "PO-API",
                "freight": "10.00",
                "items": [
                    {"variant_id": str(self.variant.id), "quantity": 5, "unit_cost": "3.00"},
                ],
            },
            format="json",
        )
        self.assertEqual(res.status_code, 201, res.data)
        order_id = res.data["id"]

        res = self.client.post(f"/api/purchases/orders/{order_id}/status/", {"status": "arrived"}, format="json")

        self.assertEqual(res.status_code, 200, res.data)
        lot = InventoryLot.objects.get(purchase_order_id=order_id)
        self.assertEqual(lot.unit_cost, Decimal("5.0000"))

    def test_unknown_variant_rolls_back(self):
        res = self.client.post(
            "/api/purchases/orders/",
            {
                "reference": "PO-BAD",
                "items": [
                    {"variant_id": "00000000-0000-0000-0000-000000000000", "quantity": 1, "unit_cost": "1.00"},
                ],
            },
            format="json",
        )

        self.assertEqual(res.status_code, 400)
        self.assertFalse(PurchaseOrder.objects.filter(reference="PO-BAD").exists())
