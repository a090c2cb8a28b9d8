# accounting/models/fixed_cost.py

from __future__ import annotations

import uuid
from decimal import ROUND_HALF_UP, Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q

TWOPLACES = Decimal("0.01")


class FixedCostPool(models.Model):
    """
    Consumable cost bucket (e.g. packaging bought in bulk).

    Rule:
    - unit_cost = total_cost / total_units (derived on save)
    - One unit is drawn per non-preorder sale that opts in
    - remaining_units is mutated ONLY by accounting.services.fixed_costs
      (conditional F() updates), and restored when the sale is deleted
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=200)

    total_cost = models.DecimalField(max_digits=14, decimal_places=2)
    total_units = models.PositiveIntegerField()
    remaining_units = models.PositiveIntegerField()

    unit_cost = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        editable=False,
        default=Decimal("0.00"),
    )

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(
                condition=Q(total_units__gt=0),
                name="fixed_cost_total_units_gt_zero",
            ),
            models.CheckConstraint(
                condition=Q(remaining_units__lte=F("total_units")),
                name="fixed_cost_remaining_lte_total",
            ),
            models.CheckConstraint(
                condition=Q(total_cost__gte=Decimal("0.00")),
                name="fixed_cost_total_cost_nonnegative",
            ),
        ]
        indexes = [
            models.Index(fields=["is_active"], name="fixedcost_active_idx"),
        ]

    def clean(self):
        if self.total_units is None or self.total_units <= 0:
            raise ValidationError({"total_units": "total_units must be greater than zero"})
        if self.total_cost is None or self.total_cost < Decimal("0.00"):
            raise ValidationError({"total_cost": "total_cost cannot be negative"})
        if self.remaining_units is not None and self.remaining_units > self.total_units:
            raise ValidationError({"remaining_units": "remaining_units cannot exceed total_units"})

    def save(self, *args, **kwargs):
        if self.remaining_units is None:
            self.remaining_units = self.total_units

        if self.total_units:
            self.unit_cost = (Decimal(str(self.total_cost)) / Decimal(self.total_units)).quantize(
                TWOPLACES, rounding=ROUND_HALF_UP
            )

        self.full_clean()
        return super().save(*args, **kwargs)

    @property
    def is_available(self) -> bool:
        return bool(self.is_active) and int(self.remaining_units or 0) > 0

    def __str__(self):
        return f"{self.name} ({self.remaining_units}/{self.total_units} @ {self.unit_cost})"


class SaleFixedCost(models.Model):
    """
    Usage record: one unit of a pool drawn by one sale.
    Deleted (and the unit restored) only when the sale is deleted.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    sale = models.ForeignKey(
        "sales.Sale",
        on_delete=models.PROTECT,
        related_name="fixed_cost_usages",
    )
    pool = models.ForeignKey(
        FixedCostPool,
        on_delete=models.PROTECT,
        related_name="usages",
    )

    unit_cost_applied = models.DecimalField(max_digits=14, decimal_places=2)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["sale", "pool"],
                name="unique_fixed_cost_usage_per_sale_pool",
            ),
        ]

    def __str__(self):
        return f"{self.pool_id} -> sale {self.sale_id} @ {self.unit_cost_applied}"
