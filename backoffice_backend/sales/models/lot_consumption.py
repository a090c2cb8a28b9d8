# sales/models/lot_consumption.py

"""
LOT CONSUMPTION (FIFO PROVENANCE AUDIT)

One row per (sale line item, lot) pair touched while fulfilling the line.

GUARANTEES:
- unit_cost_at_consumption is a snapshot: never changed, even when the lot is repriced
- Rows are written by the sale saga and removed in bulk by the reversal engine
  (before lots are restored); they are never edited
- Σ quantity_consumed per lot across live rows <= lot.quantity_received
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models

from products.models import InventoryLot

from .sale_line_item import SaleLineItem


class LotConsumption(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    sale_item = models.ForeignKey(
        SaleLineItem,
        on_delete=models.PROTECT,
        related_name="lot_consumptions",
    )
    lot = models.ForeignKey(
        InventoryLot,
        on_delete=models.PROTECT,
        related_name="consumptions",
    )

    quantity_consumed = models.PositiveIntegerField()
    unit_cost_at_consumption = models.DecimalField(max_digits=14, decimal_places=4)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["sale_item"], name="lotcons_sale_item_idx"),
            models.Index(fields=["lot"], name="lotcons_lot_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity_consumed__gt=0),
                name="lot_consumption_qty_gt_zero",
            ),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("LotConsumption rows are immutable snapshots")

        self.full_clean()
        return super().save(*args, **kwargs)

    @property
    def cost_amount(self) -> Decimal:
        return Decimal(self.unit_cost_at_consumption) * Decimal(int(self.quantity_consumed or 0))

    def __str__(self):
        return f"{self.quantity_consumed} @ {self.unit_cost_at_consumption} from lot {self.lot_id}"
