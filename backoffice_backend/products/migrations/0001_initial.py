"""
======================================================
PATH: products/migrations/0001_initial.py
======================================================
MIGRATION: CATALOG + STOCK LEDGER

Creates Product, ProductVariant and StockLedgerEntry.
InventoryLot follows in 0002 (it references purchases).
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Product",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        primary_key=True,
                        default=uuid.uuid4,
                        editable=False,
                        serialize=False,
                    ),
                ),
                ("sku", models.CharField(max_length=128, unique=True, db_index=True)),
                ("name", models.CharField(max_length=255, db_index=True)),
                ("category", models.CharField(max_length=128, blank=True, default="")),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["name"],
                "indexes": [
                    models.Index(fields=["sku"], name="product_sku_idx"),
                    models.Index(fields=["name"], name="product_name_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ProductVariant",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        primary_key=True,
                        default=uuid.uuid4,
                        editable=False,
                        serialize=False,
                    ),
                ),
                ("sku", models.CharField(max_length=128, unique=True, db_index=True)),
                ("label", models.CharField(max_length=128, blank=True, default="")),
                ("size", models.CharField(max_length=32, blank=True, default="")),
                (
                    "unit_price",
                    models.DecimalField(
                        max_digits=12, decimal_places=2, default=Decimal("0.00")
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "product",
                    models.ForeignKey(
                        to="products.product",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="variants",
                    ),
                ),
            ],
            options={
                "ordering": ["product__name", "label", "size"],
                "indexes": [
                    models.Index(fields=["product", "is_active"], name="variant_product_active_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=["product", "label", "size"],
                        name="unique_variant_per_product_label_size",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="StockLedgerEntry",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        primary_key=True,
                        default=uuid.uuid4,
                        editable=False,
                        serialize=False,
                    ),
                ),
                (
                    "entry_type",
                    models.CharField(
                        max_length=16,
                        choices=[
                            ("in", "Stock In"),
                            ("out", "Stock Out"),
                            ("adjustment", "Manual Adjustment"),
                        ],
                    ),
                ),
                ("quantity", models.IntegerField()),
                (
                    "reference_type",
                    models.CharField(
                        max_length=16,
                        choices=[("sale", "Sale"), ("purchase", "Purchase")],
                        null=True,
                        blank=True,
                    ),
                ),
                ("reference_id", models.UUIDField(null=True, blank=True)),
                ("note", models.CharField(max_length=255, blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "variant",
                    models.ForeignKey(
                        to="products.productvariant",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_ledger_entries",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
                "verbose_name_plural": "stock ledger entries",
                "indexes": [
                    models.Index(fields=["variant", "created_at"], name="sle_variant_created_idx"),
                    models.Index(fields=["reference_type", "reference_id"], name="sle_reference_idx"),
                    models.Index(fields=["entry_type"], name="sle_entry_type_idx"),
                ],
            },
        ),
    ]
