# products/models/product.py

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Sum


class Product(models.Model):
    """
    Represents a catalog product (e.g. a shirt model).

    STOCK MODEL (IMPORTANT):
    - Product itself does NOT store stock
    - Stock is tracked per ProductVariant (the stock-keeping unit)
    - Cost-bearing stock lives in InventoryLot
    - Quantity-of-truth for display lives in StockLedgerEntry
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    sku = models.CharField(max_length=128, unique=True, db_index=True)
    name = models.CharField(max_length=255, db_index=True)
    category = models.CharField(max_length=128, blank=True, default="")

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["sku"], name="product_sku_idx"),
            models.Index(fields=["name"], name="product_name_idx"),
        ]

    def __str__(self):
        return f"{self.name} ({self.sku})"

    def clean(self):
        if not (self.name or "").strip():
            raise ValidationError({"name": "name is required"})
        if not (self.sku or "").strip():
            raise ValidationError({"sku": "sku is required"})


class ProductVariant(models.Model):
    """
    Stock-keeping variant of a product (label + size).

    Lots, ledger entries and sale lines all reference the variant,
    never the product directly.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name="variants",
    )

    sku = models.CharField(max_length=128, unique=True, db_index=True)

    # e.g. "Home 24/25", "Away 24/25"
    label = models.CharField(max_length=128, blank=True, default="")
    size = models.CharField(max_length=32, blank=True, default="")

    # Default selling price (sale lines snapshot their own price)
    unit_price = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["product__name", "label", "size"]
        indexes = [
            models.Index(fields=["product", "is_active"], name="variant_product_active_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["product", "label", "size"],
                name="unique_variant_per_product_label_size",
            ),
        ]

    def clean(self):
        if self.unit_price is not None and Decimal(self.unit_price) < Decimal("0.00"):
            raise ValidationError({"unit_price": "unit_price cannot be negative"})

    @property
    def display_name(self) -> str:
        parts = [getattr(self.product, "name", "Product")]
        if self.label:
            parts.append(self.label)
        if self.size:
            parts.append(self.size)
        return " / ".join(parts)

    @property
    def lot_quantity_remaining(self) -> int:
        """
        Sum of remaining quantity across this variant's lots (cost-bearing stock).
        """
        total = self.inventory_lots.aggregate(total=Sum("quantity_remaining")).get("total")
        return int(total or 0)

    def __str__(self):
        return f"{self.display_name} ({self.sku})"
