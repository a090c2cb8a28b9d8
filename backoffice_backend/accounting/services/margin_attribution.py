# accounting/services/margin_attribution.py

"""
======================================================
PATH: accounting/services/margin_attribution.py
======================================================
MARGIN ATTRIBUTION ENGINE (READ SIDE)

Read-only replay of persisted sales and lot-consumption snapshots.

Apportionment rules (per line item of a sale):
    discount_factor   = gross_after_discount / gross            (1 when gross is 0)
    item_share        = item_gross / sale_gross
    attributed revenue = item_gross × discount_factor
    attributed fee / shipping / fixed costs = sale amount × item_share
    COGS              = Σ LotConsumption.quantity_consumed × unit_cost_at_consumption

Purchase-order view traces revenue and COGS through LotConsumption:
    revenue = item_gross × (quantity_consumed / item_quantity) × discount_factor

Period filter: date_from / date_to (inclusive) on Sale.sale_date.

Contract numbers are floats rounded to 2dp (ROUND_HALF_UP) as in the
other report services; ordering is by profit descending.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

from django.db.models import Sum

from accounting.services.exceptions import InvalidReportPeriod
from products.models import InventoryLot
from purchases.models import PurchaseOrder
from purchases.services.arrival_service import default_currency
from sales.models import LotConsumption, Sale, SaleLineItem

TWOPLACES = Decimal("0.01")
HUNDRED = Decimal("100")
ZERO = Decimal("0")


def _q2(amount) -> Decimal:
    return Decimal(amount or 0).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _num(amount) -> float:
    return float(_q2(amount))


def _margin(profit: Decimal, revenue: Decimal) -> Decimal:
    return (profit / revenue * HUNDRED) if revenue > ZERO else ZERO


def _as_date(v, field_name: str):
    if v in (None, ""):
        return None
    if isinstance(v, datetime):
        return v.date()
    if isinstance(v, date):
        return v
    try:
        return date.fromisoformat(str(v).strip())
    except ValueError as exc:
        raise InvalidReportPeriod(f"{field_name} must be YYYY-MM-DD") from exc


def parse_period(date_from=None, date_to=None) -> tuple:
    start = _as_date(date_from, "date_from")
    end = _as_date(date_to, "date_to")
    if start and end and start > end:
        raise InvalidReportPeriod("date_from must be on or before date_to")
    return start, end


def _period_filter(qs, *, prefix: str, date_from, date_to):
    if date_from:
        qs = qs.filter(**{f"{prefix}sale_date__gte": date_from})
    if date_to:
        qs = qs.filter(**{f"{prefix}sale_date__lte": date_to})
    return qs


def discount_factor(sale: Sale) -> Decimal:
    gross = Decimal(sale.gross_amount or 0)
    if gross <= ZERO:
        return Decimal("1")
    return Decimal(sale.gross_after_discount or 0) / gross


def _snapshot_cogs_by_item(item_ids) -> dict:
    rows = LotConsumption.objects.filter(sale_item_id__in=list(item_ids)).values_list(
        "sale_item_id", "quantity_consumed", "unit_cost_at_consumption"
    )
    totals = defaultdict(Decimal)
    for item_id, qty, unit_cost in rows:
        totals[item_id] += Decimal(qty) * Decimal(unit_cost)
    return totals


# ============================================================
# BY PRODUCT
# ============================================================

def margin_by_product(*, date_from=None, date_to=None) -> list[dict]:
    date_from, date_to = parse_period(date_from, date_to)

    items = list(
        _period_filter(
            SaleLineItem.objects.select_related("sale"),
            prefix="sale__",
            date_from=date_from,
            date_to=date_to,
        )
    )
    cogs = _snapshot_cogs_by_item(it.id for it in items)

    groups: dict = {}
    for item in items:
        sale = item.sale
        item_gross = Decimal(item.quantity) * Decimal(item.unit_price)
        sale_gross = Decimal(sale.gross_amount or 0)
        share = (item_gross / sale_gross) if sale_gross > ZERO else ZERO

        revenue = item_gross * discount_factor(sale)
        fees = Decimal(sale.payment_fee) * share
        shipping = Decimal(sale.shipping) * share
        fixed = Decimal(sale.fixed_costs_applied) * share
        item_cogs = cogs.get(item.id)
        if item_cogs is None:
            # No audit rows: fall back to the cost booked on the line.
            item_cogs = Decimal(item.cost_amount or 0)

        key = (item.product_label_snapshot, item.variant_label_snapshot or "")
        row = groups.setdefault(
            key,
            {
                "quantity": 0,
                "revenue": ZERO,
                "cogs": ZERO,
                "fees": ZERO,
                "shipping": ZERO,
                "fixed_costs": ZERO,
            },
        )
        row["quantity"] += int(item.quantity)
        row["revenue"] += revenue
        row["cogs"] += item_cogs
        row["fees"] += fees
        row["shipping"] += shipping
        row["fixed_costs"] += fixed

    ranked = []
    for (product_label, variant_label), row in groups.items():
        costs = row["cogs"] + row["fees"] + row["shipping"] + row["fixed_costs"]
        profit = row["revenue"] - costs
        entry = {
            "product_label": product_label,
            "variant_label": variant_label,
            "quantity": row["quantity"],
            "revenue": _num(row["revenue"]),
            "cogs": _num(row["cogs"]),
            "fees": _num(row["fees"]),
            "shipping": _num(row["shipping"]),
            "fixed_costs": _num(row["fixed_costs"]),
            "total_costs": _num(costs),
            "profit": _num(profit),
            "margin_percent": _num(_margin(profit, row["revenue"])),
        }
        ranked.append((profit, entry))

    ranked.sort(key=lambda pair: pair[0], reverse=True)
    return [row for _, row in ranked]


# ============================================================
# BY CUSTOMER
# ============================================================

def margin_by_customer(*, date_from=None, date_to=None) -> list[dict]:
    date_from, date_to = parse_period(date_from, date_to)

    sales = _period_filter(
        Sale.objects.select_related("customer").filter(customer__isnull=False),
        prefix="",
        date_from=date_from,
        date_to=date_to,
    )

    groups: dict = {}
    for sale in sales:
        row = groups.setdefault(
            sale.customer_id,
            {
                "customer_id": str(sale.customer_id),
                "customer_name": sale.customer.name,
                "sales_count": 0,
                "revenue": ZERO,
                "profit": ZERO,
            },
        )
        row["sales_count"] += 1
        row["revenue"] += Decimal(sale.gross_after_discount or 0)
        row["profit"] += Decimal(sale.net_profit or 0)

    ranked = []
    for row in groups.values():
        revenue, profit, count = row["revenue"], row["profit"], row["sales_count"]
        entry = {
            "customer_id": row["customer_id"],
            "customer_name": row["customer_name"],
            "sales_count": count,
            "revenue": _num(revenue),
            "profit": _num(profit),
            "average_margin_percent": _num(_margin(profit, revenue)),
            "average_ticket": _num(revenue / count if count else ZERO),
        }
        ranked.append((profit, entry))

    ranked.sort(key=lambda pair: pair[0], reverse=True)
    return [row for _, row in ranked]


# ============================================================
# BY PURCHASE ORDER
# ============================================================

def _order_total_cost(order: PurchaseOrder, currency: str) -> Decimal:
    items_cost = sum((it.line_cost(currency) for it in order.items.all()), ZERO)
    return items_cost + order.shared_costs


def margin_by_purchase_order(*, date_from=None, date_to=None) -> list[dict]:
    """
    Orders placed on or before date_to; revenue and COGS come from
    consumptions whose sale falls inside the period.
    """
    date_from, date_to = parse_period(date_from, date_to)
    currency = default_currency()

    orders = PurchaseOrder.objects.select_related("supplier").prefetch_related("items")
    if date_to:
        orders = orders.filter(order_date__lte=date_to)
    orders = list(orders)

    lot_totals = {
        r["purchase_order_id"]: (int(r["received"] or 0), int(r["remaining"] or 0))
        for r in InventoryLot.objects.filter(purchase_order__in=orders)
        .values("purchase_order_id")
        .annotate(received=Sum("quantity_received"), remaining=Sum("quantity_remaining"))
        .order_by()
    }

    consumptions = _period_filter(
        LotConsumption.objects.select_related("lot", "sale_item", "sale_item__sale").filter(
            lot__purchase_order__in=orders
        ),
        prefix="sale_item__sale__",
        date_from=date_from,
        date_to=date_to,
    )

    revenue_by_order = defaultdict(Decimal)
    cogs_by_order = defaultdict(Decimal)
    for row in consumptions:
        item = row.sale_item
        item_qty = Decimal(int(item.quantity or 0))
        if item_qty <= ZERO:
            continue

        item_gross = item_qty * Decimal(item.unit_price)
        proportion = Decimal(row.quantity_consumed) / item_qty
        order_id = row.lot.purchase_order_id

        revenue_by_order[order_id] += item_gross * proportion * discount_factor(item.sale)
        cogs_by_order[order_id] += Decimal(row.quantity_consumed) * Decimal(row.unit_cost_at_consumption)

    ranked = []
    for order in orders:
        ordered_units = order.total_units
        received, remaining = lot_totals.get(order.id, (0, 0))
        sold = received - remaining

        revenue = revenue_by_order.get(order.id, ZERO)
        cogs = cogs_by_order.get(order.id, ZERO)
        profit = revenue - cogs

        sell_through = (Decimal(sold) / Decimal(received) * HUNDRED) if received else ZERO

        entry = {
            "purchase_order_id": str(order.id),
            "reference": order.reference,
            "order_date": order.order_date.isoformat(),
            "supplier": getattr(order.supplier, "name", None),
            "source": order.source,
            "status": order.status,
            "total_cost": _num(_order_total_cost(order, currency)),
            "units_ordered": ordered_units,
            "units_received": received,
            "units_sold": sold,
            "units_in_stock": remaining,
            "revenue": _num(revenue),
            "cogs": _num(cogs),
            "profit": _num(profit),
            "margin_percent": _num(_margin(profit, revenue)),
            "is_fully_sold": received > 0 and sold >= ordered_units,
            "sell_through_percent": _num(sell_through),
        }
        ranked.append((profit, entry))

    ranked.sort(key=lambda pair: pair[0], reverse=True)
    return [row for _, row in ranked]
