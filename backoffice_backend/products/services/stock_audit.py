# products/services/stock_audit.py

"""
STOCK AUDIT (READ-ONLY)

Compares the two views of on-hand stock per variant:
- lots:   Σ InventoryLot.quantity_remaining  (cost-bearing view)
- ledger: Σ StockLedgerEntry in - out ± adjustment  (quantity-of-truth view)

and lists lots violating 0 <= remaining <= received.

A discrepancy is expected after oversold sales (ledger goes below the lots)
or legacy reversals; the audit only reports, it never repairs.
"""

from __future__ import annotations

from django.db.models import F, Q, Sum
from django.utils import timezone

from products.models import InventoryLot, ProductVariant
from products.services.stock_ledger import balances_by_variant


def audit_stock() -> dict:
    lot_rows = (
        InventoryLot.objects.values("variant_id")
        .annotate(remaining=Sum("quantity_remaining"))
        .order_by()
    )
    lots_by_variant = {r["variant_id"]: int(r["remaining"] or 0) for r in lot_rows}
    ledger_by_variant = balances_by_variant()

    variant_ids = set(lots_by_variant) | set(ledger_by_variant)
    variants = {
        v.id: v
        for v in ProductVariant.objects.select_related("product").filter(id__in=variant_ids)
    }

    rows = []
    for vid in variant_ids:
        lots_qty = lots_by_variant.get(vid, 0)
        ledger_qty = ledger_by_variant.get(vid, 0)
        discrepancy = lots_qty - ledger_qty
        v = variants.get(vid)

        rows.append(
            {
                "variant_id": str(vid),
                "product_label": getattr(getattr(v, "product", None), "name", "Unknown"),
                "variant_label": getattr(v, "label", "") or "",
                "size": getattr(v, "size", "") or "",
                "lots_quantity_remaining": lots_qty,
                "ledger_balance": ledger_qty,
                "discrepancy": discrepancy,
                "has_negative_stock": ledger_qty < 0,
                "has_discrepancy": discrepancy != 0,
            }
        )

    rows.sort(key=lambda r: (-abs(r["discrepancy"]), r["product_label"], r["variant_label"], r["size"]))

    bad_lots = (
        InventoryLot.objects.select_related("variant__product")
        .filter(Q(quantity_remaining__lt=0) | Q(quantity_remaining__gt=F("quantity_received")))
        .order_by("received_at")
    )
    inconsistent_lots = [
        {
            "lot_id": str(lot.id),
            "variant_id": str(lot.variant_id),
            "product_label": lot.variant.product.name,
            "quantity_received": lot.quantity_received,
            "quantity_remaining": lot.quantity_remaining,
            "issue": (
                "quantity_remaining is negative"
                if lot.quantity_remaining < 0
                else "quantity_remaining exceeds quantity_received"
            ),
        }
        for lot in bad_lots
    ]

    return {
        "timestamp": timezone.now().isoformat(),
        "summary": {
            "total_variants_audited": len(rows),
            "variants_with_negative_stock": sum(1 for r in rows if r["has_negative_stock"]),
            "variants_with_discrepancies": sum(1 for r in rows if r["has_discrepancy"]),
            "inconsistent_lots": len(inconsistent_lots),
        },
        "variants": rows,
        "inconsistent_lots": inconsistent_lots,
    }
