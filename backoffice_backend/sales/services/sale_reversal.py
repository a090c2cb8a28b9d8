# sales/services/sale_reversal.py

"""
======================================================
PATH: sales/services/sale_reversal.py
======================================================
REVERSAL ENGINE (EDIT + DELETE)

Undo every inventory effect a sale had:

1) Collect the sale's LotConsumption rows and delete them
2) Restore each referenced lot by exactly the consumed quantity (audited path)
3) Legacy fallback: stocked lines with no audit rows are restored by variant,
   oldest lot first (the same order consumption walks), and flagged
4) Delete the sale's stock ledger OUT entries
5) Release fixed cost units (delete only)

Rules:
- Callers own the transaction: edit runs this before re-applying the sale,
  delete runs it and then removes line items + header in the same block
- Lot quantities move only through LotLedger
- Every fallback or unplaced unit is reported as ReversalInconsistency;
  nothing is silently dropped
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field

from django.db import transaction
from django.db.models import Sum

from accounting.services.fixed_costs import release_sale_fixed_costs
from products.services.lot_ledger import LotRestoreError, RestoredLot, lot_ledger
from products.services.stock_ledger import delete_sale_entries, sale_entries
from sales.models import LotConsumption, Sale
from sales.services.exceptions import ReversalInconsistency, SaleNotFound

logger = logging.getLogger(__name__)


@dataclass
class ReversalResult:
    sale_id: object
    lots_restored: list[RestoredLot] = field(default_factory=list)
    consumption_rows_deleted: int = 0
    ledger_entries_deleted: int = 0
    fixed_cost_units_released: int = 0
    legacy_variants: list = field(default_factory=list)
    inconsistencies: list[ReversalInconsistency] = field(default_factory=list)

    @property
    def is_consistent(self) -> bool:
        return not self.inconsistencies

    def as_dict(self) -> dict:
        return {
            "sale_id": str(self.sale_id),
            "units_restored": sum(r.quantity for r in self.lots_restored),
            "consumption_rows_deleted": self.consumption_rows_deleted,
            "ledger_entries_deleted": self.ledger_entries_deleted,
            "fixed_cost_units_released": self.fixed_cost_units_released,
            "legacy_variants": [str(v) for v in self.legacy_variants],
            "warnings": [str(e) for e in self.inconsistencies],
        }


def _flag(result: ReversalResult, message: str, **extra) -> None:
    result.inconsistencies.append(ReversalInconsistency(message))
    logger.warning(
        "Sale reversal inconsistency",
        extra={"sale_id": str(result.sale_id), "detail": message, **extra},
    )


def _legacy_quantities(*, sale: Sale, audited_item_ids: set) -> dict:
    """
    {variant_id: units to restore} for stocked lines without audit rows.

    Prefers the sale's OUT ledger entries for the variant; falls back to the
    line quantities actually served from lots.
    """
    if sale.is_preorder:
        return {}

    from_items = defaultdict(int)
    for item in sale.items.all():
        if item.id in audited_item_ids or not item.variant_id:
            continue
        served = int(item.quantity) - int(item.quantity_unfulfilled or 0)
        if served > 0:
            from_items[item.variant_id] += served

    if not from_items:
        return {}

    ledger_rows = (
        sale_entries(sale_id=sale.id)
        .filter(variant_id__in=list(from_items))
        .values("variant_id")
        .annotate(total=Sum("quantity"))
        .order_by()
    )
    from_ledger = {r["variant_id"]: int(r["total"] or 0) for r in ledger_rows}

    return {vid: from_ledger.get(vid, qty) for vid, qty in from_items.items()}


def reverse_sale_inventory(*, sale: Sale, release_fixed_costs: bool) -> ReversalResult:
    result = ReversalResult(sale_id=sale.id)

    consumptions = list(
        LotConsumption.objects.filter(sale_item__sale=sale).order_by("created_at", "id")
    )
    audited_item_ids = {c.sale_item_id for c in consumptions}

    # Audit rows go first: the lots they point at are about to be refilled.
    if consumptions:
        result.consumption_rows_deleted, _ = LotConsumption.objects.filter(
            id__in=[c.id for c in consumptions]
        ).delete()

    for row in consumptions:
        try:
            result.lots_restored.append(
                lot_ledger.restore(lot_id=row.lot_id, quantity=row.quantity_consumed)
            )
        except LotRestoreError as exc:
            _flag(result, str(exc), lot_id=str(row.lot_id))

    for variant_id, quantity in _legacy_quantities(
        sale=sale, audited_item_ids=audited_item_ids
    ).items():
        restored, unplaced = lot_ledger.restore_by_variant(variant=variant_id, quantity=quantity)
        result.lots_restored.extend(restored)
        result.legacy_variants.append(variant_id)

        _flag(
            result,
            f"Variant {variant_id} restored without consumption audit rows ({quantity} units)",
            variant_id=str(variant_id),
        )
        if unplaced:
            _flag(
                result,
                f"{unplaced} units of variant {variant_id} had no lot room to return to",
                variant_id=str(variant_id),
            )

    result.ledger_entries_deleted = delete_sale_entries(sale_id=sale.id)

    if release_fixed_costs:
        result.fixed_cost_units_released = release_sale_fixed_costs(sale_id=sale.id)

    logger.info(
        "Sale inventory reversed",
        extra={
            "sale_id": str(sale.id),
            "lots_restored": len(result.lots_restored),
            "legacy_variants": len(result.legacy_variants),
            "consistent": result.is_consistent,
        },
    )
    return result


@transaction.atomic
def delete_sale(*, sale_id) -> ReversalResult:
    """
    Reverse all inventory effects, then remove line items and the sale.
    """
    try:
        sale = Sale.objects.select_for_update().get(id=sale_id)
    except Sale.DoesNotExist as exc:
        raise SaleNotFound("Sale not found") from exc

    result = reverse_sale_inventory(sale=sale, release_fixed_costs=True)

    sale.items.all().delete()
    sale.delete()

    logger.info("Sale deleted", extra={"sale_id": str(sale_id)})
    return result
