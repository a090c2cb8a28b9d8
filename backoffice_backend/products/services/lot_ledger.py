# products/services/lot_ledger.py

"""
======================================================
PATH: products/services/lot_ledger.py
======================================================
LOT LEDGER (SINGLE OWNER OF LOT QUANTITIES + COST)

Purpose:
- Insert lots at purchase arrival.
- Consume lots strictly oldest-first (FIFO by received_at) for sales.
- Restore consumption of a specific lot (precise inverse, audited path).
- Restore by variant when no audit rows exist (legacy fallback).
- Reprice lots when a deferred landed cost is supplied.

Every feature that touches lots (arrival, sale saga, reversal, cost correction)
goes through this object; nothing else writes InventoryLot quantities.

Concurrency rules:
- consume() runs in a per-variant atomic block with row locks (select_for_update)
- every decrement is a conditional UPDATE:
    quantity_remaining = quantity_remaining - n  WHERE quantity_remaining >= n
  a lost race raises ConcurrentConsumptionError and the whole call rolls back
- restore() is a locked increment guarded by remaining + n <= received

Shortfall:
- consume() never refuses: if lots run out, the plan reports quantity_unfulfilled
  and the caller applies the configured oversell policy.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from django.db import transaction
from django.db.models import F, Sum
from django.utils import timezone

from products.models import InventoryLot

logger = logging.getLogger(__name__)

FOURPLACES = Decimal("0.0001")


# ============================================================
# DOMAIN ERRORS
# ============================================================

class LotLedgerError(Exception):
    pass


class ConcurrentConsumptionError(LotLedgerError):
    """A lot changed between lock and conditional decrement."""


class LotRestoreError(LotLedgerError):
    pass


def _to_int_qty(value) -> int:
    """
    Quantity normalizer.
    HARD RULE: quantities are integer units in this system.
    """
    if value is None or value == "":
        return 0

    if isinstance(value, bool):
        raise ValueError("quantity must be a whole integer unit")

    if isinstance(value, int):
        return value

    if isinstance(value, str):
        s = value.strip()
        if s.isdigit():
            return int(s)

    raise ValueError("quantity must be a whole integer unit")


def _unit_cost(value) -> Decimal:
    try:
        cost = Decimal(str(value if value is not None else "0"))
    except Exception as exc:
        raise ValueError("unit_cost must be a valid decimal") from exc
    if cost < Decimal("0"):
        raise ValueError("unit_cost cannot be negative")
    return cost.quantize(FOURPLACES)


def _variant_id(variant):
    return getattr(variant, "id", variant)


# ============================================================
# RESULT TYPES
# ============================================================

@dataclass(frozen=True)
class ConsumedLot:
    lot_id: object
    quantity: int
    unit_cost: Decimal
    cost_pending: bool = False

    @property
    def line_cost(self) -> Decimal:
        return self.unit_cost * Decimal(self.quantity)


@dataclass(frozen=True)
class ConsumptionPlan:
    """
    Ordered record of what one consume() call took, oldest lot first.
    """

    variant_id: object
    quantity_requested: int
    lines: tuple[ConsumedLot, ...] = field(default_factory=tuple)

    @property
    def quantity_consumed(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def quantity_unfulfilled(self) -> int:
        return max(self.quantity_requested - self.quantity_consumed, 0)

    @property
    def total_cost(self) -> Decimal:
        # Shortfall units carry zero cost; the sale is flagged cogs_pending instead.
        return sum((line.line_cost for line in self.lines), Decimal("0"))

    @property
    def cost_pending(self) -> bool:
        return any(line.cost_pending for line in self.lines)

    @property
    def is_short(self) -> bool:
        return self.quantity_unfulfilled > 0


@dataclass(frozen=True)
class RestoredLot:
    lot_id: object
    quantity: int


# ============================================================
# LEDGER
# ============================================================

class LotLedger:
    """
    Explicit API over InventoryLot: insert / consume / restore / reprice.
    """

    # ---------------------------
    # Reads
    # ---------------------------

    def available_quantity(self, *, variant) -> int:
        total = (
            InventoryLot.objects.filter(variant_id=_variant_id(variant))
            .aggregate(total=Sum("quantity_remaining"))
            .get("total")
        )
        return int(total or 0)

    def lots_for_variant(self, *, variant):
        return InventoryLot.objects.filter(variant_id=_variant_id(variant)).order_by(
            "received_at", "created_at", "id"
        )

    # ---------------------------
    # Insert
    # ---------------------------

    def insert_lot(
        self,
        *,
        variant,
        quantity,
        unit_cost,
        purchase_order=None,
        purchase_item=None,
        received_at=None,
        cost_pending_tax: bool = False,
    ) -> InventoryLot:
        qty = _to_int_qty(quantity)
        if qty <= 0:
            raise LotLedgerError("Lot quantity must be greater than zero")

        lot = InventoryLot(
            variant_id=_variant_id(variant),
            purchase_order=purchase_order,
            purchase_item=purchase_item,
            quantity_received=qty,
            quantity_remaining=qty,
            unit_cost=_unit_cost(unit_cost),
            received_at=received_at or timezone.now(),
            cost_pending_tax=bool(cost_pending_tax),
        )
        lot.save()

        logger.info(
            "Inventory lot inserted",
            extra={
                "lot_id": str(lot.id),
                "variant_id": str(lot.variant_id),
                "quantity": qty,
                "unit_cost": str(lot.unit_cost),
                "cost_pending_tax": lot.cost_pending_tax,
            },
        )
        return lot

    # ---------------------------
    # FIFO consumption
    # ---------------------------

    def consume(self, *, variant, quantity) -> ConsumptionPlan:
        """
        Take `quantity` units from the variant's lots, oldest received first.

        Decrements happen here, not later: concurrent callers observe the new
        remainder as soon as this returns.
        """
        variant_id = _variant_id(variant)
        qty = _to_int_qty(quantity)
        if qty <= 0:
            return ConsumptionPlan(variant_id=variant_id, quantity_requested=0)

        lines: list[ConsumedLot] = []
        remaining_needed = qty

        with transaction.atomic():
            lots = list(
                InventoryLot.objects.select_for_update()
                .filter(variant_id=variant_id, quantity_remaining__gt=0)
                .order_by("received_at", "created_at", "id")
            )

            for lot in lots:
                if remaining_needed <= 0:
                    break

                available = int(lot.quantity_remaining or 0)
                if available <= 0:
                    continue

                take = available if available <= remaining_needed else remaining_needed

                updated = InventoryLot.objects.filter(
                    pk=lot.pk,
                    quantity_remaining__gte=take,
                ).update(quantity_remaining=F("quantity_remaining") - take)

                if updated != 1:
                    raise ConcurrentConsumptionError(
                        f"Lot {lot.pk} changed during consumption (needed {take})."
                    )

                lines.append(
                    ConsumedLot(
                        lot_id=lot.pk,
                        quantity=take,
                        unit_cost=Decimal(lot.unit_cost),
                        cost_pending=bool(lot.cost_pending_tax),
                    )
                )
                remaining_needed -= take

        plan = ConsumptionPlan(
            variant_id=variant_id,
            quantity_requested=qty,
            lines=tuple(lines),
        )

        if plan.is_short:
            logger.warning(
                "FIFO consumption short of lot stock",
                extra={
                    "variant_id": str(variant_id),
                    "requested": qty,
                    "unfulfilled": plan.quantity_unfulfilled,
                },
            )

        return plan

    # ---------------------------
    # Restoration
    # ---------------------------

    def restore(self, *, lot_id, quantity) -> RestoredLot:
        """
        Add back `quantity` units to one lot (inverse of a recorded consumption).
        Raises LotRestoreError if the lot is missing or would exceed quantity_received.
        """
        qty = _to_int_qty(quantity)
        if qty <= 0:
            return RestoredLot(lot_id=lot_id, quantity=0)

        with transaction.atomic():
            updated = InventoryLot.objects.filter(
                pk=lot_id,
                quantity_remaining__lte=F("quantity_received") - qty,
            ).update(quantity_remaining=F("quantity_remaining") + qty)

            if updated != 1:
                if not InventoryLot.objects.filter(pk=lot_id).exists():
                    raise LotRestoreError(f"Lot {lot_id} not found")
                raise LotRestoreError(
                    f"Restoring {qty} to lot {lot_id} would exceed its quantity_received"
                )

        return RestoredLot(lot_id=lot_id, quantity=qty)

    def restore_by_variant(self, *, variant, quantity) -> tuple[list[RestoredLot], int]:
        """
        Legacy fallback when no consumption audit rows exist.

        Walks the variant's lots in FIFO order (the same order consumption
        walks them) and refills each up to quantity_received until `quantity`
        is exhausted. Returns (restored lots, units that could not be placed).

        This cannot know which lots the original sale actually drew from, so
        callers must flag the result for operator review.
        """
        variant_id = _variant_id(variant)
        qty = _to_int_qty(quantity)
        restored: list[RestoredLot] = []
        if qty <= 0:
            return restored, 0

        remaining = qty

        with transaction.atomic():
            lots = list(
                InventoryLot.objects.select_for_update()
                .filter(variant_id=variant_id, quantity_remaining__lt=F("quantity_received"))
                .order_by("received_at", "created_at", "id")
            )

            for lot in lots:
                if remaining <= 0:
                    break

                room = int(lot.quantity_received) - int(lot.quantity_remaining)
                if room <= 0:
                    continue

                put_back = room if room <= remaining else remaining

                updated = InventoryLot.objects.filter(
                    pk=lot.pk,
                    quantity_remaining__lte=F("quantity_received") - put_back,
                ).update(quantity_remaining=F("quantity_remaining") + put_back)

                if updated != 1:
                    raise LotRestoreError(f"Lot {lot.pk} changed during legacy restoration")

                restored.append(RestoredLot(lot_id=lot.pk, quantity=put_back))
                remaining -= put_back

        return restored, remaining

    # ---------------------------
    # Cost correction
    # ---------------------------

    def reprice_lot(self, *, lot_id, unit_cost, cost_pending_tax: bool = False) -> None:
        """
        Only cost correction calls this. Consumption snapshots are not touched.
        """
        new_cost = _unit_cost(unit_cost)
        updated = InventoryLot.objects.filter(pk=lot_id).update(
            unit_cost=new_cost,
            cost_pending_tax=bool(cost_pending_tax),
        )
        if updated != 1:
            raise LotLedgerError(f"Lot {lot_id} not found")

        logger.info(
            "Inventory lot repriced",
            extra={"lot_id": str(lot_id), "unit_cost": str(new_cost)},
        )


# Module-level ledger used by every service.
lot_ledger = LotLedger()
