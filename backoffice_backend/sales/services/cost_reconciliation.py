# sales/services/cost_reconciliation.py

"""
MANUAL COGS RECONCILIATION

Re-derive a sale's product cost from the CURRENT unit cost of the lots it
consumed (after a deferred duty was folded in by cost correction).

Rules:
- LotConsumption snapshots are never rewritten; they stay the record of
  what was booked at sale time
- Line cost_amount and Sale.product_cost are refreshed, then the
  financials are re-derived (fee, shipping and fixed costs are kept)
- cogs_pending clears only when no consumed lot is still cost-pending,
  no line has unfulfilled units and the sale is not a preorder
"""

from __future__ import annotations

import logging
from collections import defaultdict
from decimal import ROUND_HALF_UP, Decimal

from django.db import transaction

from sales.models import LotConsumption, Sale, SaleLineItem
from sales.services.exceptions import SaleNotFound
from sales.services.financials import derive_profit

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")


def _money(v) -> Decimal:
    return Decimal(str(v or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


@transaction.atomic
def reconcile_sale_costs(*, sale_id) -> dict:
    try:
        sale = Sale.objects.select_for_update().get(id=sale_id)
    except Sale.DoesNotExist as exc:
        raise SaleNotFound("Sale not found") from exc

    items = list(sale.items.all())
    consumptions = LotConsumption.objects.filter(sale_item__sale=sale).select_related("lot")

    cost_by_item = defaultdict(Decimal)
    still_pending = bool(sale.is_preorder)

    for row in consumptions:
        cost_by_item[row.sale_item_id] += Decimal(row.lot.unit_cost) * Decimal(row.quantity_consumed)
        if row.lot.cost_pending_tax:
            still_pending = True

    product_cost = Decimal("0.00")
    for item in items:
        if int(item.quantity_unfulfilled or 0) > 0:
            still_pending = True

        # Lines without audit rows keep the cost booked at sale time.
        if item.id not in cost_by_item:
            product_cost += _money(item.cost_amount)
            continue

        line_cost = _money(cost_by_item[item.id])
        product_cost += line_cost
        if line_cost != _money(item.cost_amount):
            SaleLineItem.objects.filter(pk=item.pk).update(cost_amount=line_cost)

    previous_cost = sale.product_cost
    net, margin = derive_profit(
        gross_after_discount=sale.gross_after_discount,
        fee=sale.payment_fee,
        shipping=sale.shipping,
        fixed_costs=sale.fixed_costs_applied,
        cogs=product_cost,
    )

    sale.product_cost = product_cost
    sale.net_profit = net
    sale.margin_percent = margin
    sale.cogs_pending = still_pending
    sale.save(update_fields=["product_cost", "net_profit", "margin_percent", "cogs_pending", "updated_at"])

    logger.info(
        "Sale costs reconciled",
        extra={
            "sale_id": str(sale.id),
            "previous_cost": str(previous_cost),
            "product_cost": str(product_cost),
            "cogs_pending": still_pending,
        },
    )

    return {
        "sale_id": str(sale.id),
        "previous_product_cost": str(_money(previous_cost)),
        "product_cost": str(product_cost),
        "net_profit": str(net),
        "margin_percent": str(margin),
        "cogs_pending": still_pending,
    }
