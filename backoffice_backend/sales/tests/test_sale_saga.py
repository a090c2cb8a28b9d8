# sales/tests/test_sale_saga.py

from __future__ import annotations

from decimal import Decimal
from unittest import mock

from django.db import DatabaseError
from django.test import TestCase, override_settings

from accounting.models import FixedCostPool, PaymentFee, SaleFixedCost
from accounting.services.exceptions import FixedCostUnavailable
from products.models import Product, ProductVariant, StockLedgerEntry
from products.services.lot_ledger import LotLedgerError, lot_ledger
from sales.models import LotConsumption, Sale
from sales.services.exceptions import (
    AuditWriteFailure,
    ConsumptionPersistFailure,
    FixedCostApplyFailure,
    InsufficientStock,
    InvalidSaleInput,
    LedgerEntryWriteFailure,
    PartialSaveFailure,
    RollbackFailure,
    SaleNotFound,
)
from sales.services.sale_input import SaleLineInput
from sales.services.sale_saga import SagaOutcome, record_sale, update_sale
from sales.tests.factories import SaleFixtureMixin

REJECT_OVERSELL = {"OVERSELL_POLICY": "reject", "DEFAULT_CURRENCY": "BRL"}


def warning_types(result):
    return [type(w) for w in result.warnings]


class SaleSagaCommitTests(SaleFixtureMixin, TestCase):
    """
    GUARANTEES:
    - stocked lines consume lots oldest-first and book that exact cost
    - net_profit = gross_after_discount - fee - shipping - fixed costs - COGS
    - every consumed lot gets an audit row and every stocked line an OUT entry
    - one unit is drawn from each opted-in fixed cost pool
    """

    def test_records_sale_with_fifo_cost(self):
        result = record_sale(data=self.sale_input())

        self.assertEqual(result.outcome, SagaOutcome.COMMITTED, result.as_dict())
        self.assertEqual(result.warnings, [])
        self.assertFalse(result.cogs_pending)

        sale = Sale.objects.get(id=result.sale_id)
        self.assertEqual(sale.gross_amount, Decimal("100.00"))
        self.assertEqual(sale.discount_amount, Decimal("10.00"))
        self.assertEqual(sale.gross_after_discount, Decimal("90.00"))
        self.assertEqual(sale.payment_fee, Decimal("5.00"))
        self.assertEqual(sale.shipping, Decimal("3.00"))
        self.assertEqual(sale.fixed_costs_applied, Decimal("2.00"))
        self.assertEqual(sale.product_cost, Decimal("74.00"))
        self.assertEqual(sale.net_profit, Decimal("6.00"))
        self.assertEqual(sale.margin_percent, Decimal("6.67"))

        self.assertEqual(self.remaining(self.lot_a), 0)
        self.assertEqual(self.remaining(self.lot_b), 3)

    def test_line_items_snapshot_labels_and_cost(self):
        result = record_sale(data=self.sale_input())
        stocked, free_text = Sale.objects.get(id=result.sale_id).items.order_by("-cost_amount")

        self.assertEqual(stocked.product_label_snapshot, "Basic Tee")
        self.assertEqual(stocked.variant_label_snapshot, "Black")
        self.assertEqual(stocked.size_snapshot, "M")
        self.assertEqual(stocked.cost_amount, Decimal("74.00"))
        self.assertEqual(free_text.product_label_snapshot, "Gift wrap")
        self.assertIsNone(free_text.variant_id)
        self.assertEqual(free_text.cost_amount, Decimal("0.00"))

    def test_audit_rows_and_ledger_entry_are_written(self):
        result = record_sale(data=self.sale_input())

        rows = LotConsumption.objects.filter(sale_item__sale_id=result.sale_id).order_by(
            "unit_cost_at_consumption"
        )
        self.assertEqual(
            [(r.lot_id, r.quantity_consumed, r.unit_cost_at_consumption) for r in rows],
            [(self.lot_a.pk, 5, Decimal("10.0000")), (self.lot_b.pk, 2, Decimal("12.0000"))],
        )

        entry = StockLedgerEntry.objects.get(reference_id=result.sale_id)
        self.assertEqual(entry.entry_type, StockLedgerEntry.EntryType.OUT)
        self.assertEqual(entry.quantity, 7)

    def test_fixed_cost_pool_unit_is_drawn(self):
        result = record_sale(data=self.sale_input())

        self.pool.refresh_from_db()
        self.assertEqual(self.pool.remaining_units, 9)
        usage = SaleFixedCost.objects.get(sale_id=result.sale_id)
        self.assertEqual(usage.unit_cost_applied, Decimal("2.00"))

    def test_fee_is_looked_up_when_not_given(self):
        PaymentFee.objects.create(
            payment_method="credit", installments=3, fee_percent=Decimal("3.000"), fee_fixed=Decimal("0.50")
        )

        result = record_sale(
            data=self.sale_input(payment_fee=None, payment_method="credit", installments=3)
        )

        sale = Sale.objects.get(id=result.sale_id)
        self.assertEqual(sale.payment_fee, Decimal("3.20"))

    def test_unknown_fee_schedule_means_no_fee(self):
        result = record_sale(data=self.sale_input(payment_fee=None, payment_method="cash"))

        self.assertEqual(Sale.objects.get(id=result.sale_id).payment_fee, Decimal("0.00"))

    def test_preorder_consumes_nothing_and_is_cogs_pending(self):
        result = record_sale(data=self.sale_input(is_preorder=True))

        self.assertTrue(result.committed)
        self.assertTrue(result.cogs_pending)

        sale = Sale.objects.get(id=result.sale_id)
        self.assertTrue(sale.is_preorder)
        self.assertEqual(sale.product_cost, Decimal("0.00"))
        self.assertEqual(sale.fixed_costs_applied, Decimal("0.00"))

        self.assertEqual(self.remaining(self.lot_a), 5)
        self.assertFalse(LotConsumption.objects.exists())
        self.assertFalse(StockLedgerEntry.objects.exists())
        self.pool.refresh_from_db()
        self.assertEqual(self.pool.remaining_units, 10)

    def test_cost_pending_lot_flags_sale(self):
        lot_ledger.insert_lot(variant=self.variant, quantity=1, unit_cost="1.00", cost_pending_tax=True)

        result = record_sale(data=self.sale_input(quantity=11, extra_line=False))

        self.assertTrue(result.cogs_pending)
        self.assertTrue(Sale.objects.get(id=result.sale_id).cogs_pending)

    def test_unknown_variant_is_rejected_before_consuming(self):
        data = self.sale_input(
            items=(
                SaleLineInput(
                    product_label="",
                    quantity=1,
                    unit_price=Decimal("1.00"),
                    variant_id="00000000-0000-0000-0000-000000000000",
                ),
            )
        )

        result = record_sale(data=data)

        self.assertEqual(result.outcome, SagaOutcome.COMPENSATED_FAILURE)
        self.assertIsInstance(result.error, InvalidSaleInput)
        self.assertEqual(self.remaining(self.lot_a), 5)
        self.assertFalse(Sale.objects.exists())


class SaleSagaOversellTests(SaleFixtureMixin, TestCase):
    """
    GUARANTEES:
    - "allow": shortfall units carry zero cost and the sale is cogs_pending
    - "reject": nothing is recorded and every consumed unit goes back
    """

    def test_oversell_allowed_records_unfulfilled_units(self):
        result = record_sale(data=self.sale_input(quantity=12, extra_line=False))

        self.assertTrue(result.committed)
        self.assertTrue(result.cogs_pending)
        self.assertEqual(warning_types(result), [InsufficientStock])
        self.assertEqual(result.warnings[0].unfulfilled, 2)

        sale = Sale.objects.get(id=result.sale_id)
        item = sale.items.get()
        self.assertEqual(item.quantity_unfulfilled, 2)
        self.assertEqual(item.cost_amount, Decimal("110.00"))
        self.assertEqual(sale.product_cost, Decimal("110.00"))

    @override_settings(INVENTORY=REJECT_OVERSELL)
    def test_oversell_rejected_restores_lots(self):
        result = record_sale(data=self.sale_input(quantity=12, extra_line=False))

        self.assertEqual(result.outcome, SagaOutcome.COMPENSATED_FAILURE)
        self.assertIsInstance(result.error, InsufficientStock)
        self.assertEqual(self.remaining(self.lot_a), 5)
        self.assertEqual(self.remaining(self.lot_b), 5)
        self.assertFalse(Sale.objects.exists())

    @override_settings(INVENTORY=REJECT_OVERSELL)
    def test_failed_rollback_is_reported(self):
        with mock.patch.object(lot_ledger, "restore", side_effect=LotLedgerError("lot locked")):
            with self.assertLogs("sales.services.sale_saga", level="ERROR"):
                result = record_sale(data=self.sale_input(quantity=12, extra_line=False))

        self.assertEqual(result.outcome, SagaOutcome.COMPENSATED_FAILURE)
        self.assertIn(RollbackFailure, warning_types(result))


class SaleSagaFailureTests(SaleFixtureMixin, TestCase):
    """
    GUARANTEES:
    - a failed header write (phase 2) is compensated
    - a failed consume on a later line gives back what earlier lines took
    - failed line items (phase 3) leave the sale and its consumption in place
    - audit / ledger / fixed cost failures (phases 4-6) are warnings only
    - the header only carries fixed cost that was actually drawn
    """

    def test_header_failure_is_compensated(self):
        with mock.patch(
            "sales.services.sale_saga._phase_persist_sale", side_effect=DatabaseError("disk full")
        ):
            result = record_sale(data=self.sale_input())

        self.assertEqual(result.outcome, SagaOutcome.COMPENSATED_FAILURE)
        self.assertIsInstance(result.error, ConsumptionPersistFailure)
        self.assertEqual(self.remaining(self.lot_a), 5)
        self.assertEqual(self.remaining(self.lot_b), 5)

    def test_line_item_failure_is_not_compensated(self):
        with mock.patch(
            "sales.services.sale_saga._phase_line_items", side_effect=DatabaseError("disk full")
        ):
            with self.assertLogs("sales.services.sale_saga", level="ERROR"):
                result = record_sale(data=self.sale_input())

        self.assertEqual(result.outcome, SagaOutcome.UNCOMPENSATED_FAILURE)
        self.assertIsInstance(result.error, PartialSaveFailure)
        self.assertEqual(result.error.sale_id, result.sale_id)
        self.assertTrue(Sale.objects.filter(id=result.sale_id).exists())
        self.assertEqual(Sale.objects.get(id=result.sale_id).items.count(), 0)
        self.assertEqual(self.remaining(self.lot_a), 0)
        self.assertEqual(self.remaining(self.lot_b), 3)

    def test_audit_failure_is_a_warning(self):
        with mock.patch.object(LotConsumption.objects, "create", side_effect=DatabaseError("locked")):
            result = record_sale(data=self.sale_input())

        self.assertTrue(result.committed)
        self.assertEqual(warning_types(result), [AuditWriteFailure])
        self.assertEqual(Sale.objects.get(id=result.sale_id).product_cost, Decimal("74.00"))

    def test_ledger_failure_is_a_warning(self):
        with mock.patch(
            "sales.services.sale_saga.record_sale_out", side_effect=DatabaseError("locked")
        ):
            result = record_sale(data=self.sale_input())

        self.assertTrue(result.committed)
        self.assertEqual(warning_types(result), [LedgerEntryWriteFailure])
        self.assertFalse(StockLedgerEntry.objects.exists())

    def test_fixed_cost_failure_is_a_warning(self):
        inactive = FixedCostPool.objects.create(
            name="Old boxes", total_cost=Decimal("5.00"), total_units=5, is_active=False
        )

        result = record_sale(data=self.sale_input(fixed_cost_pool_ids=(self.pool.id, inactive.id)))

        self.assertTrue(result.committed)
        self.assertEqual(warning_types(result), [FixedCostApplyFailure])
        sale = Sale.objects.get(id=result.sale_id)
        self.assertEqual(sale.fixed_costs_applied, Decimal("2.00"))
        self.assertEqual(SaleFixedCost.objects.filter(sale=sale).count(), 1)

    def test_later_line_consume_failure_restores_earlier_lines(self):
        cap = ProductVariant.objects.create(
            product=Product.objects.create(sku="CAP", name="Cap"),
            sku="CAP-RED",
            label="Red",
            size="U",
            unit_price=Decimal("15.00"),
        )
        cap_lot = lot_ledger.insert_lot(variant=cap, quantity=4, unit_cost="6.00")

        real_consume = lot_ledger.consume
        calls = []

        def consume_then_fail(*, variant, quantity):
            calls.append(variant)
            if len(calls) == 2:
                raise LotLedgerError("row lock lost")
            return real_consume(variant=variant, quantity=quantity)

        data = self.sale_input(
            items=(
                SaleLineInput(product_label="", quantity=7, unit_price=Decimal("10.00"), variant_id=self.variant.id),
                SaleLineInput(product_label="", quantity=2, unit_price=Decimal("15.00"), variant_id=cap.id),
            )
        )

        with mock.patch.object(lot_ledger, "consume", side_effect=consume_then_fail):
            result = record_sale(data=data)

        self.assertEqual(len(calls), 2)
        self.assertEqual(result.outcome, SagaOutcome.COMPENSATED_FAILURE)
        self.assertIsInstance(result.error, ConsumptionPersistFailure)
        self.assertEqual(self.remaining(self.lot_a), 5)
        self.assertEqual(self.remaining(self.lot_b), 5)
        self.assertEqual(self.remaining(cap_lot), 4)
        self.assertFalse(Sale.objects.exists())

    def test_undrawn_fixed_cost_is_removed_from_header(self):
        with mock.patch(
            "sales.services.sale_saga.apply_fixed_cost",
            side_effect=FixedCostUnavailable("Fixed cost pool Packaging has no units left"),
        ):
            result = record_sale(data=self.sale_input())

        self.assertTrue(result.committed)
        self.assertEqual(warning_types(result), [FixedCostApplyFailure])

        sale = Sale.objects.get(id=result.sale_id)
        self.assertEqual(sale.fixed_costs_applied, Decimal("0.00"))
        self.assertEqual(sale.net_profit, Decimal("8.00"))
        self.assertEqual(sale.margin_percent, Decimal("8.89"))
        self.assertFalse(SaleFixedCost.objects.filter(sale=sale).exists())
        self.pool.refresh_from_db()
        self.assertEqual(self.pool.remaining_units, 10)


class SaleSagaUpdateTests(SaleFixtureMixin, TestCase):
    """
    GUARANTEES:
    - an edit reverses the previous consumption before re-consuming
    - fixed costs charged at creation are kept as they were
    - an edit that fails before its line items are written changes nothing
    """

    def setUp(self):
        super().setUp()
        self.sale_id = record_sale(data=self.sale_input()).sale_id

    def test_update_reconsumes_from_oldest_lot(self):
        result = update_sale(sale_id=self.sale_id, data=self.sale_input(quantity=3))

        self.assertTrue(result.committed, result.as_dict())
        self.assertEqual(result.sale_id, self.sale_id)
        self.assertEqual(self.remaining(self.lot_a), 2)
        self.assertEqual(self.remaining(self.lot_b), 5)

        sale = Sale.objects.get(id=self.sale_id)
        self.assertEqual(sale.product_cost, Decimal("30.00"))
        self.assertEqual(sale.items.count(), 2)
        self.assertEqual(LotConsumption.objects.filter(sale_item__sale=sale).count(), 1)
        self.assertEqual(StockLedgerEntry.objects.get(reference_id=self.sale_id).quantity, 3)

    def test_update_keeps_fixed_costs(self):
        update_sale(
            sale_id=self.sale_id,
            data=self.sale_input(quantity=3, fixed_cost_pool_ids=()),
        )

        sale = Sale.objects.get(id=self.sale_id)
        self.assertEqual(sale.fixed_costs_applied, Decimal("2.00"))
        self.pool.refresh_from_db()
        self.assertEqual(self.pool.remaining_units, 9)
        self.assertEqual(SaleFixedCost.objects.filter(sale=sale).count(), 1)

    def test_update_unknown_sale(self):
        result = update_sale(
            sale_id="00000000-0000-0000-0000-000000000000", data=self.sale_input()
        )

        self.assertEqual(result.outcome, SagaOutcome.COMPENSATED_FAILURE)
        self.assertIsInstance(result.error, SaleNotFound)

    def assert_sale_unchanged(self):
        sale = Sale.objects.get(id=self.sale_id)
        self.assertEqual(sale.items.count(), 2)
        self.assertEqual(sale.product_cost, Decimal("74.00"))
        self.assertEqual(LotConsumption.objects.filter(sale_item__sale=sale).count(), 2)
        self.assertEqual(StockLedgerEntry.objects.get(reference_id=self.sale_id).quantity, 7)
        self.assertEqual(self.remaining(self.lot_a), 0)
        self.assertEqual(self.remaining(self.lot_b), 3)

    def test_failed_header_write_leaves_sale_untouched(self):
        with mock.patch(
            "sales.services.sale_saga._phase_persist_sale", side_effect=DatabaseError("disk full")
        ):
            result = update_sale(sale_id=self.sale_id, data=self.sale_input(quantity=3))

        self.assertEqual(result.outcome, SagaOutcome.COMPENSATED_FAILURE)
        self.assertIsInstance(result.error, ConsumptionPersistFailure)
        self.assertEqual(result.sale_id, self.sale_id)
        self.assert_sale_unchanged()

    @override_settings(INVENTORY=REJECT_OVERSELL)
    def test_rejected_oversell_leaves_sale_untouched(self):
        result = update_sale(sale_id=self.sale_id, data=self.sale_input(quantity=12))

        self.assertEqual(result.outcome, SagaOutcome.COMPENSATED_FAILURE)
        self.assertIsInstance(result.error, InsufficientStock)
        self.assert_sale_unchanged()

    def test_invalid_edit_leaves_sale_untouched(self):
        result = update_sale(
            sale_id=self.sale_id,
            data=self.sale_input(customer_id="00000000-0000-0000-0000-000000000000"),
        )

        self.assertIsInstance(result.error, InvalidSaleInput)
        self.assert_sale_unchanged()

    def test_line_item_failure_on_edit_is_not_compensated(self):
        with mock.patch(
            "sales.services.sale_saga._phase_line_items", side_effect=DatabaseError("disk full")
        ):
            with self.assertLogs("sales.services.sale_saga", level="ERROR"):
                result = update_sale(sale_id=self.sale_id, data=self.sale_input(quantity=3))

        self.assertEqual(result.outcome, SagaOutcome.UNCOMPENSATED_FAILURE)
        self.assertEqual(result.sale_id, self.sale_id)
        self.assertEqual(result.error.sale_id, self.sale_id)
        sale = Sale.objects.get(id=self.sale_id)
        self.assertEqual(sale.items.count(), 0)
        self.assertEqual(sale.product_cost, Decimal("30.00"))
        self.assertEqual(self.remaining(self.lot_a), 2)
        self.assertEqual(self.remaining(self.lot_b), 5)
