# accounting/services/fixed_costs.py

"""
======================================================
PATH: accounting/services/fixed_costs.py
======================================================
FIXED COST POOL SERVICE

Purpose:
- Quote the fixed cost a new sale will carry (sum of opted-in pool unit costs)
- Draw one unit per pool for a sale (usage row + conditional decrement)
- Release every unit a sale drew (sale deletion only)

Rules:
- remaining_units changes only through conditional F() updates here
- A pool is drawable when active and remaining_units > 0
- Edits never re-draw or release units; the sale keeps what it was charged
"""

from __future__ import annotations

import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import F

from accounting.models import FixedCostPool, SaleFixedCost
from accounting.services.exceptions import FixedCostReleaseError, FixedCostUnavailable

logger = logging.getLogger(__name__)


def available_pools(*, pool_ids):
    ids = [pid for pid in (pool_ids or []) if pid]
    if not ids:
        return FixedCostPool.objects.none()
    return FixedCostPool.objects.filter(
        id__in=ids,
        is_active=True,
        remaining_units__gt=0,
    ).order_by("name", "id")


def quote_fixed_costs(*, pool_ids) -> Decimal:
    """
    Fixed cost a new sale would carry if every available pool is drawn.
    """
    total = Decimal("0.00")
    for pool in available_pools(pool_ids=pool_ids):
        total += Decimal(pool.unit_cost)
    return total


@transaction.atomic
def apply_fixed_cost(*, sale, pool_id) -> SaleFixedCost:
    try:
        pool = FixedCostPool.objects.select_for_update().get(id=pool_id)
    except FixedCostPool.DoesNotExist as exc:
        raise FixedCostUnavailable(f"Fixed cost pool {pool_id} not found") from exc

    if not pool.is_active:
        raise FixedCostUnavailable(f"Fixed cost pool {pool.name} is inactive")

    updated = FixedCostPool.objects.filter(
        pk=pool.pk,
        remaining_units__gt=0,
    ).update(remaining_units=F("remaining_units") - 1)

    if updated != 1:
        raise FixedCostUnavailable(f"Fixed cost pool {pool.name} has no units left")

    usage = SaleFixedCost.objects.create(
        sale=sale,
        pool=pool,
        unit_cost_applied=pool.unit_cost,
    )

    logger.info(
        "Fixed cost unit drawn",
        extra={"sale_id": str(sale.id), "pool_id": str(pool.id), "unit_cost": str(pool.unit_cost)},
    )
    return usage


@transaction.atomic
def release_sale_fixed_costs(*, sale_id) -> int:
    """
    Give back one unit per usage row and delete the rows. Returns units released.
    """
    usages = list(SaleFixedCost.objects.select_for_update().filter(sale_id=sale_id))

    for usage in usages:
        updated = FixedCostPool.objects.filter(
            pk=usage.pool_id,
            remaining_units__lt=F("total_units"),
        ).update(remaining_units=F("remaining_units") + 1)

        if updated != 1:
            raise FixedCostReleaseError(
                f"Releasing a unit to pool {usage.pool_id} would exceed total_units"
            )

    SaleFixedCost.objects.filter(id__in=[u.id for u in usages]).delete()
    return len(usages)
