# purchases/services/arrival_service.py

"""
======================================================
PATH: purchases/services/arrival_service.py
======================================================
PURCHASE ARRIVAL SERVICE

Turn an arrived PurchaseOrder into cost-bearing inventory (atomic):

Canonical flow:
1) Lock purchase order
2) Validate status + items
3) Compute landed unit cost per item
4) Insert one InventoryLot per item with a variant (through LotLedger)
5) Append one IN stock ledger entry per created lot
6) Stamp stock_posted_at

Landed unit cost:
    base_unit_cost (converted to default currency)
    + (freight + extra_fees + (duty_cost or 0)) / total units in the order

Idempotency rule:
- The guard is explicit: one lot per purchase item (OneToOne on the lot).
  Items that already have a lot are skipped, so calling twice creates nothing new.
- stock_posted_at is informational once set.

Legacy repair:
- repair_purchase_inventory() recreates missing IN entries and missing lots
  for orders that were marked arrived without posting stock.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from products.models import InventoryLot
from products.services.lot_ledger import lot_ledger
from products.services.stock_ledger import purchase_entries_exist, record_purchase_in
from purchases.models import PurchaseOrder

logger = logging.getLogger(__name__)


class PurchaseArrivalError(ValueError):
    pass


def default_currency() -> str:
    return (getattr(settings, "INVENTORY", {}) or {}).get("DEFAULT_CURRENCY", "BRL")


def _lock_order(purchase_order_id) -> PurchaseOrder:
    try:
        return (
            PurchaseOrder.objects.select_for_update()
            .prefetch_related("items", "items__variant")
            .get(id=purchase_order_id)
        )
    except PurchaseOrder.DoesNotExist as exc:
        raise PurchaseArrivalError("Purchase order not found") from exc


# ============================================================
# COSTING
# ============================================================

def compute_landed_unit_costs(*, purchase_order: PurchaseOrder, items=None) -> dict:
    """
    {item_id: landed unit cost} for every item of the order.

    Shared costs are spread over ALL units of the order (including lines
    without a variant), so each unit carries the same share.
    """
    items = list(items if items is not None else purchase_order.items.all())
    currency = default_currency()

    total_units = sum(int(it.quantity or 0) for it in items)
    shared = purchase_order.shared_costs
    per_unit_share = (shared / Decimal(total_units)) if total_units > 0 else Decimal("0")

    return {it.id: it.base_unit_cost(currency) + per_unit_share for it in items}


# ============================================================
# LOT CREATION
# ============================================================

def _create_missing_lots(*, order: PurchaseOrder, with_ledger_entries: bool) -> list[InventoryLot]:
    items = list(order.items.all())
    if not items:
        raise PurchaseArrivalError("Purchase order has no items")

    stocked_items = [it for it in items if it.variant_id]
    already = set(
        InventoryLot.objects.filter(purchase_item__in=stocked_items).values_list(
            "purchase_item_id", flat=True
        )
    )

    costs = compute_landed_unit_costs(purchase_order=order, items=items)
    received_at = order.arrived_at or timezone.now()
    cost_pending = order.has_deferred_duty

    created: list[InventoryLot] = []
    for it in stocked_items:
        if it.id in already:
            continue

        lot = lot_ledger.insert_lot(
            variant=it.variant_id,
            quantity=it.quantity,
            unit_cost=costs[it.id],
            purchase_order=order,
            purchase_item=it,
            received_at=received_at,
            cost_pending_tax=cost_pending,
        )
        created.append(lot)

        if with_ledger_entries:
            record_purchase_in(
                variant=it.variant_id,
                quantity=it.quantity,
                purchase_order_id=order.id,
            )

    return created


@transaction.atomic
def post_purchase_arrival(*, purchase_order_id) -> dict:
    """
    Create lots + IN entries for an arrived order. Safe to call more than once.
    """
    order = _lock_order(purchase_order_id)

    if order.status != PurchaseOrder.STATUS_ARRIVED:
        raise PurchaseArrivalError("Only arrived purchase orders can post stock")

    created = _create_missing_lots(order=order, with_ledger_entries=True)

    if order.stock_posted_at is None:
        order.stock_posted_at = timezone.now()
        order.save(update_fields=["stock_posted_at"])

    logger.info(
        "Purchase arrival posted",
        extra={
            "purchase_order_id": str(order.id),
            "lots_created": len(created),
            "cost_pending_tax": order.has_deferred_duty,
        },
    )

    return {
        "purchase_order_id": str(order.id),
        "status": order.status,
        "lots_created": len(created),
        "cost_pending_tax": order.has_deferred_duty,
        "stock_posted_at": order.stock_posted_at.isoformat() if order.stock_posted_at else None,
    }


@transaction.atomic
def transition_purchase_order(*, purchase_order_id, new_status: str) -> dict:
    """
    Forward-only status change. Reaching "arrived" posts stock exactly once.
    """
    order = _lock_order(purchase_order_id)
    new_status = (new_status or "").strip().lower()

    valid = {s for s, _ in PurchaseOrder.STATUSES}
    if new_status not in valid:
        raise PurchaseArrivalError(f"Unknown status: {new_status!r}")

    if new_status == order.status:
        return {"purchase_order_id": str(order.id), "status": order.status, "lots_created": 0}

    if not order.can_transition_to(new_status):
        raise PurchaseArrivalError(f"Cannot move purchase order from {order.status} to {new_status}")

    order.status = new_status
    update_fields = ["status"]
    if new_status == PurchaseOrder.STATUS_ARRIVED:
        order.arrived_at = timezone.now()
        update_fields.append("arrived_at")
    order.save(update_fields=update_fields)

    if new_status == PurchaseOrder.STATUS_ARRIVED:
        return post_purchase_arrival(purchase_order_id=order.id)

    return {"purchase_order_id": str(order.id), "status": order.status, "lots_created": 0}


# ============================================================
# LEGACY REPAIR
# ============================================================

@transaction.atomic
def repair_purchase_inventory(*, purchase_order_id) -> dict:
    """
    Fix an arrived order that never posted stock (missing IN entries and/or lots).
    """
    order = _lock_order(purchase_order_id)

    if order.status != PurchaseOrder.STATUS_ARRIVED:
        raise PurchaseArrivalError("Only arrived purchase orders can be repaired")

    entries_created = 0
    if not purchase_entries_exist(purchase_order_id=order.id):
        for it in order.items.all():
            if not it.variant_id:
                continue
            record_purchase_in(
                variant=it.variant_id,
                quantity=it.quantity,
                purchase_order_id=order.id,
            )
            entries_created += 1

    lots = _create_missing_lots(order=order, with_ledger_entries=False)

    if order.stock_posted_at is None:
        order.stock_posted_at = timezone.now()
        order.save(update_fields=["stock_posted_at"])

    logger.info(
        "Purchase inventory repaired",
        extra={
            "purchase_order_id": str(order.id),
            "ledger_entries_created": entries_created,
            "lots_created": len(lots),
        },
    )

    return {
        "purchase_order_id": str(order.id),
        "ledger_entries_created": entries_created,
        "lots_created": len(lots),
    }
