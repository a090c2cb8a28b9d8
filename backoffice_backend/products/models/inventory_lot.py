# products/models/inventory_lot.py

"""
INVENTORY LOT (COST-BEARING STOCK)

Represents ONE purchase-order line once the order has arrived.

CANONICAL MODEL:
- InventoryLot = units received from one purchase line, with its own unit cost
- quantity_received is immutable after creation
- received_at is immutable after creation (defines FIFO order)
- quantity_remaining is mutated ONLY via LotLedger (conditional F() updates)
- unit_cost is mutated ONLY via LotLedger.reprice_lot (cost correction)
- 0 <= quantity_remaining <= quantity_received (DB-enforced)
- Lots are never deleted; an exhausted lot stays for audit + cost correction
"""

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from .product import ProductVariant


class InventoryLot(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    variant = models.ForeignKey(
        ProductVariant,
        on_delete=models.PROTECT,
        related_name="inventory_lots",
    )

    # Null only for manual intake (no purchase order behind the lot)
    purchase_order = models.ForeignKey(
        "purchases.PurchaseOrder",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="inventory_lots",
    )

    # One lot per purchase line: this is the arrival idempotency key
    purchase_item = models.OneToOneField(
        "purchases.PurchaseOrderItem",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="inventory_lot",
    )

    quantity_received = models.PositiveIntegerField(
        help_text="Quantity received (immutable)"
    )

    quantity_remaining = models.PositiveIntegerField(
        default=0,
        help_text="Remaining quantity (LotLedger-managed only)",
    )

    unit_cost = models.DecimalField(
        max_digits=14,
        decimal_places=4,
        default=Decimal("0.0000"),
        help_text="Landed unit cost: item cost + pro-rated freight, fees and duty.",
    )

    received_at = models.DateTimeField(
        default=timezone.now,
        help_text="Arrival time (immutable); defines FIFO order.",
    )

    cost_pending_tax = models.BooleanField(
        default=False,
        help_text="True while a known deferred cost (duty) is not yet folded into unit_cost.",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["received_at", "created_at"]
        indexes = [
            models.Index(fields=["variant", "received_at"], name="lot_variant_received_idx"),
            models.Index(fields=["variant", "quantity_remaining"], name="lot_variant_remaining_idx"),
            models.Index(fields=["purchase_order"], name="lot_purchase_order_idx"),
            models.Index(fields=["cost_pending_tax"], name="lot_cost_pending_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity_received__gt=0),
                name="chk_lot_qty_received_gt_zero",
            ),
            models.CheckConstraint(
                condition=Q(quantity_remaining__gte=0),
                name="chk_lot_qty_remaining_gte_zero",
            ),
            models.CheckConstraint(
                condition=Q(quantity_remaining__lte=F("quantity_received")),
                name="chk_lot_remaining_lte_received",
            ),
            models.CheckConstraint(
                condition=Q(unit_cost__gte=0),
                name="chk_lot_unit_cost_gte_zero",
            ),
        ]

    # -------------------------------------------------
    # VALIDATION
    # -------------------------------------------------

    def clean(self):
        if self.quantity_received is None or self.quantity_received <= 0:
            raise ValidationError(
                {"quantity_received": "quantity_received must be greater than zero"}
            )

        if self.quantity_remaining is None or self.quantity_remaining < 0:
            raise ValidationError(
                {"quantity_remaining": "quantity_remaining cannot be negative"}
            )

        if self.quantity_remaining > self.quantity_received:
            raise ValidationError(
                {"quantity_remaining": "quantity_remaining cannot exceed quantity_received"}
            )

        if self.unit_cost is None or self.unit_cost < Decimal("0"):
            raise ValidationError({"unit_cost": "unit_cost cannot be negative"})

        if self.purchase_item_id and self.purchase_order_id:
            item_order_id = getattr(self.purchase_item, "purchase_order_id", None)
            if item_order_id and item_order_id != self.purchase_order_id:
                raise ValidationError(
                    {"purchase_item": "purchase_item must belong to purchase_order"}
                )

    # -------------------------------------------------
    # IMMUTABILITY
    # -------------------------------------------------

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError(
                "InventoryLot rows are mutated only through LotLedger (consume / restore / reprice)."
            )

        self.full_clean()
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError(
            "InventoryLot rows are never deleted; an exhausted lot stays for audit."
        )

    # -------------------------------------------------
    # READ-ONLY HELPERS
    # -------------------------------------------------

    @property
    def quantity_consumed(self) -> int:
        return int(self.quantity_received or 0) - int(self.quantity_remaining or 0)

    @property
    def is_exhausted(self) -> bool:
        return int(self.quantity_remaining or 0) <= 0

    @property
    def total_remaining_value(self) -> Decimal:
        return Decimal(self.unit_cost or 0) * Decimal(int(self.quantity_remaining or 0))

    def __str__(self):
        variant_sku = getattr(self.variant, "sku", "variant")
        return f"Lot {variant_sku} | {self.quantity_remaining}/{self.quantity_received} @ {self.unit_cost}"
