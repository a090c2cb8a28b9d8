# products/services/stock_ledger.py

"""
STOCK LEDGER SERVICES

Purpose:
- Append IN / OUT / ADJUSTMENT entries (quantity-of-truth for on-hand display).
- Compute variant balances.
- Remove a sale's entries (reversal engine only).

Rules:
- Quantities are integer units.
- IN references a purchase, OUT references a sale.
- This is a reporting view; lot cost never depends on it.
"""

from __future__ import annotations

from django.db.models import Case, F, IntegerField, Sum, Value, When

from products.models import StockLedgerEntry


def record_purchase_in(*, variant, quantity: int, purchase_order_id) -> StockLedgerEntry:
    return StockLedgerEntry.objects.create(
        variant_id=getattr(variant, "id", variant),
        entry_type=StockLedgerEntry.EntryType.IN,
        quantity=int(quantity),
        reference_type=StockLedgerEntry.ReferenceType.PURCHASE,
        reference_id=purchase_order_id,
    )


def record_sale_out(*, variant, quantity: int, sale_id) -> StockLedgerEntry:
    return StockLedgerEntry.objects.create(
        variant_id=getattr(variant, "id", variant),
        entry_type=StockLedgerEntry.EntryType.OUT,
        quantity=int(quantity),
        reference_type=StockLedgerEntry.ReferenceType.SALE,
        reference_id=sale_id,
    )


def record_adjustment(*, variant, quantity: int, note: str = "") -> StockLedgerEntry:
    """
    Manual correction; quantity is signed (+ found stock, - shrinkage).
    """
    return StockLedgerEntry.objects.create(
        variant_id=getattr(variant, "id", variant),
        entry_type=StockLedgerEntry.EntryType.ADJUSTMENT,
        quantity=int(quantity),
        note=(note or "").strip()[:255],
    )


def sale_entries(*, sale_id):
    return StockLedgerEntry.objects.filter(
        entry_type=StockLedgerEntry.EntryType.OUT,
        reference_type=StockLedgerEntry.ReferenceType.SALE,
        reference_id=sale_id,
    )


def delete_sale_entries(*, sale_id) -> int:
    deleted, _ = sale_entries(sale_id=sale_id).delete()
    return deleted


def purchase_entries_exist(*, purchase_order_id) -> bool:
    return StockLedgerEntry.objects.filter(
        entry_type=StockLedgerEntry.EntryType.IN,
        reference_type=StockLedgerEntry.ReferenceType.PURCHASE,
        reference_id=purchase_order_id,
    ).exists()


def _signed_quantity_expr():
    return Case(
        When(entry_type=StockLedgerEntry.EntryType.OUT, then=-F("quantity")),
        default=F("quantity"),
        output_field=IntegerField(),
    )


def balances_by_variant(*, variant_ids=None) -> dict:
    """
    {variant_id: in - out + adjustments}
    """
    qs = StockLedgerEntry.objects.all()
    if variant_ids is not None:
        qs = qs.filter(variant_id__in=list(variant_ids))

    rows = (
        qs.values("variant_id")
        .annotate(balance=Sum(_signed_quantity_expr(), default=Value(0)))
        .order_by()
    )
    return {r["variant_id"]: int(r["balance"] or 0) for r in rows}


def variant_balance(*, variant) -> int:
    vid = getattr(variant, "id", variant)
    return balances_by_variant(variant_ids=[vid]).get(vid, 0)
