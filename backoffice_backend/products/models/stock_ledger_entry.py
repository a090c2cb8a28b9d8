# products/models/stock_ledger_entry.py

"""
STOCK LEDGER (QUANTITY-OF-TRUTH)

Append-style log of quantity deltas per variant.

GUARANTEES:
- Never edited after creation (append-only writes)
- Direction is explicit: IN (purchase arrival), OUT (sale), ADJUSTMENT (manual, signed)
- Sale / purchase entries carry a reference (type + id)
- Independent of lot cost: this is the on-hand display view, not the COGS source

Sale entries are removed in bulk by the reversal engine when a sale is
edited or deleted (and recreated on edit).
"""

import uuid

from django.core.exceptions import ValidationError
from django.db import models

from .product import ProductVariant


class StockLedgerEntry(models.Model):
    class EntryType(models.TextChoices):
        IN = "in", "Stock In"
        OUT = "out", "Stock Out"
        ADJUSTMENT = "adjustment", "Manual Adjustment"

    class ReferenceType(models.TextChoices):
        SALE = "sale", "Sale"
        PURCHASE = "purchase", "Purchase"

    REFERENCE_FOR_TYPE = {
        EntryType.IN: ReferenceType.PURCHASE,
        EntryType.OUT: ReferenceType.SALE,
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    variant = models.ForeignKey(
        ProductVariant,
        on_delete=models.PROTECT,
        related_name="stock_ledger_entries",
    )

    entry_type = models.CharField(max_length=16, choices=EntryType.choices)

    # Magnitude for IN / OUT (always positive).
    # ADJUSTMENT carries its sign here.
    quantity = models.IntegerField()

    reference_type = models.CharField(
        max_length=16,
        choices=ReferenceType.choices,
        null=True,
        blank=True,
    )
    reference_id = models.UUIDField(null=True, blank=True)

    note = models.CharField(max_length=255, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        verbose_name_plural = "stock ledger entries"
        indexes = [
            models.Index(fields=["variant", "created_at"], name="sle_variant_created_idx"),
            models.Index(fields=["reference_type", "reference_id"], name="sle_reference_idx"),
            models.Index(fields=["entry_type"], name="sle_entry_type_idx"),
        ]

    def clean(self):
        if self.quantity is None or self.quantity == 0:
            raise ValidationError({"quantity": "quantity cannot be zero"})

        if self.entry_type in (self.EntryType.IN, self.EntryType.OUT):
            if self.quantity < 0:
                raise ValidationError(
                    {"quantity": f"{self.entry_type} entries carry a positive magnitude"}
                )

            expected = self.REFERENCE_FOR_TYPE.get(self.entry_type)
            if self.reference_type and self.reference_type != expected:
                raise ValidationError(
                    {"reference_type": f"{self.entry_type} entries must reference a {expected}"}
                )

        if self.reference_type and not self.reference_id:
            raise ValidationError({"reference_id": "reference_id is required with reference_type"})

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("StockLedgerEntry records are never edited")

        self.full_clean()
        return super().save(*args, **kwargs)

    @property
    def signed_quantity(self) -> int:
        q = int(self.quantity or 0)
        if self.entry_type == self.EntryType.OUT:
            return -q
        return q

    def __str__(self):
        variant_sku = getattr(self.variant, "sku", "variant")
        return f"{variant_sku} | {self.entry_type} | {self.quantity}"
