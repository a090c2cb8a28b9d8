# sales/models/sale_line_item.py

"""
SALE LINE ITEM (POINT-IN-TIME SNAPSHOT)

One product line of a Sale.

Notes:
- Label / variant / size / price are snapshots; later catalog edits never change them.
- cost_amount is the FIFO COGS booked for this line (sum of its LotConsumption rows).
- quantity_unfulfilled > 0 means lots ran out (oversell); those units carry zero cost.
- Line items are rewritten as a set when a sale is edited; never patched in place.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models

from products.models import ProductVariant

from .sale import Sale


class SaleLineItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    sale = models.ForeignKey(
        Sale,
        on_delete=models.CASCADE,
        related_name="items",
    )

    # Nullable: free-text lines (no stock) and variants removed from catalog
    variant = models.ForeignKey(
        ProductVariant,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sale_line_items",
    )

    product_label_snapshot = models.CharField(max_length=255)
    variant_label_snapshot = models.CharField(max_length=128, blank=True, default="")
    size_snapshot = models.CharField(max_length=32, blank=True, default="")

    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)

    cost_amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="FIFO cost booked for this line (snapshot).",
    )
    quantity_unfulfilled = models.PositiveIntegerField(
        default=0,
        help_text="Units sold beyond available lot stock (zero cost).",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["sale", "created_at"], name="saleline_sale_created_idx"),
            models.Index(fields=["variant"], name="saleline_variant_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name="sale_line_quantity_gt_zero",
            ),
            models.CheckConstraint(
                condition=models.Q(quantity_unfulfilled__lte=models.F("quantity")),
                name="sale_line_unfulfilled_lte_quantity",
            ),
        ]

    def clean(self):
        if self.quantity is None or self.quantity <= 0:
            raise ValidationError({"quantity": "quantity must be greater than zero"})
        if self.unit_price is None or Decimal(self.unit_price) < Decimal("0.00"):
            raise ValidationError({"unit_price": "unit_price cannot be negative"})

    @property
    def gross_amount(self) -> Decimal:
        return Decimal(self.unit_price) * Decimal(int(self.quantity or 0))

    def __str__(self):
        parts = [self.product_label_snapshot]
        if self.variant_label_snapshot:
            parts.append(self.variant_label_snapshot)
        if self.size_snapshot:
            parts.append(self.size_snapshot)
        return f"{' / '.join(parts)} x {self.quantity}"
