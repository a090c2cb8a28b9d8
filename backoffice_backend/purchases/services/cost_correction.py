# purchases/services/cost_correction.py

"""
======================================================
PATH: purchases/services/cost_correction.py
======================================================
COST CORRECTION ENGINE

Fold a deferred landed cost (customs duty known only after arrival)
into the lots of a purchase order.

Canonical flow (atomic):
1) Lock the order and store the new duty_cost
2) No lots yet and the order has arrived  -> create them (repair path)
3) Lots exist -> reprice each one through LotLedger, clear cost_pending_tax
4) Flag sales whose consumption snapshots differ from the new cost
   as cogs_pending (snapshots themselves are never rewritten)

Reconciling those sales is a separate, explicit step
(sales.services.cost_reconciliation).
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.db import transaction

from products.models import InventoryLot
from products.services.lot_ledger import FOURPLACES, lot_ledger
from purchases.models import PurchaseOrder
from purchases.services.arrival_service import (
    compute_landed_unit_costs,
    repair_purchase_inventory,
)
from sales.models import LotConsumption, Sale

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")


class CostCorrectionError(ValueError):
    pass


def _duty(value) -> Decimal:
    try:
        duty = Decimal(str(value))
    except (InvalidOperation, TypeError) as exc:
        raise CostCorrectionError("duty_cost must be a valid decimal") from exc
    if duty < Decimal("0"):
        raise CostCorrectionError("duty_cost cannot be negative")
    return duty.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _flag_affected_sales(*, new_costs: dict) -> int:
    """
    new_costs: {lot_id: new unit cost}
    """
    sale_ids = set()
    rows = LotConsumption.objects.filter(lot_id__in=list(new_costs)).values_list(
        "lot_id", "unit_cost_at_consumption", "sale_item__sale_id"
    )
    for lot_id, snapshot, sale_id in rows:
        if Decimal(snapshot).quantize(FOURPLACES) != new_costs[lot_id]:
            sale_ids.add(sale_id)

    if not sale_ids:
        return 0
    return Sale.objects.filter(id__in=sale_ids).update(cogs_pending=True)


@transaction.atomic
def recompute_lot_cost(*, purchase_order_id, new_duty_cost) -> dict:
    duty = _duty(new_duty_cost)

    try:
        order = (
            PurchaseOrder.objects.select_for_update()
            .prefetch_related("items")
            .get(id=purchase_order_id)
        )
    except PurchaseOrder.DoesNotExist as exc:
        raise CostCorrectionError("Purchase order not found") from exc

    order.duty_cost = duty
    order.save(update_fields=["duty_cost"])

    lots = list(InventoryLot.objects.filter(purchase_order=order))

    if not lots:
        if order.status != PurchaseOrder.STATUS_ARRIVED:
            return {
                "purchase_order_id": str(order.id),
                "duty_cost": str(duty),
                "lots_created": 0,
                "lots_repriced": 0,
                "sales_flagged": 0,
            }

        repaired = repair_purchase_inventory(purchase_order_id=order.id)
        return {
            "purchase_order_id": str(order.id),
            "duty_cost": str(duty),
            "lots_created": repaired["lots_created"],
            "lots_repriced": 0,
            "sales_flagged": 0,
        }

    costs = compute_landed_unit_costs(purchase_order=order)

    new_costs = {}
    for lot in lots:
        if lot.purchase_item_id not in costs:
            continue
        unit_cost = costs[lot.purchase_item_id].quantize(FOURPLACES)
        lot_ledger.reprice_lot(lot_id=lot.id, unit_cost=unit_cost, cost_pending_tax=False)
        new_costs[lot.id] = unit_cost

    flagged = _flag_affected_sales(new_costs=new_costs)

    logger.info(
        "Lot costs recomputed",
        extra={
            "purchase_order_id": str(order.id),
            "duty_cost": str(duty),
            "lots_repriced": len(new_costs),
            "sales_flagged": flagged,
        },
    )

    return {
        "purchase_order_id": str(order.id),
        "duty_cost": str(duty),
        "lots_created": 0,
        "lots_repriced": len(new_costs),
        "sales_flagged": flagged,
    }
