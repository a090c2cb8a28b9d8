"""
======================================================
PATH: products/migrations/0002_inventorylot.py
======================================================
MIGRATION: INVENTORY LOTS

Lots reference purchase orders and their items, so this step waits
for purchases.0001.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    dependencies = [
        ("products", "0001_initial"),
        ("purchases", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="InventoryLot",
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
                    "quantity_received",
                    models.PositiveIntegerField(help_text="Quantity received (immutable)"),
                ),
                (
                    "quantity_remaining",
                    models.PositiveIntegerField(
                        default=0,
                        help_text="Remaining quantity (LotLedger-managed only)",
                    ),
                ),
                (
                    "unit_cost",
                    models.DecimalField(
                        max_digits=14,
                        decimal_places=4,
                        default=Decimal("0.0000"),
                        help_text="Landed unit cost: item cost + pro-rated freight, fees and duty.",
                    ),
                ),
                (
                    "received_at",
                    models.DateTimeField(
                        default=django.utils.timezone.now,
                        help_text="Arrival time (immutable); defines FIFO order.",
                    ),
                ),
                (
                    "cost_pending_tax",
                    models.BooleanField(
                        default=False,
                        help_text="True while a known deferred cost (duty) is not yet folded into unit_cost.",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "variant",
                    models.ForeignKey(
                        to="products.productvariant",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="inventory_lots",
                    ),
                ),
                (
                    "purchase_order",
                    models.ForeignKey(
                        to="purchases.purchaseorder",
                        null=True,
                        blank=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="inventory_lots",
                    ),
                ),
                (
                    "purchase_item",
                    models.OneToOneField(
                        to="purchases.purchaseorderitem",
                        null=True,
                        blank=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="inventory_lot",
                    ),
                ),
            ],
            options={
                "ordering": ["received_at", "created_at"],
                "indexes": [
                    models.Index(fields=["variant", "received_at"], name="lot_variant_received_idx"),
                    models.Index(fields=["variant", "quantity_remaining"], name="lot_variant_remaining_idx"),
                    models.Index(fields=["purchase_order"], name="lot_purchase_order_idx"),
                    models.Index(fields=["cost_pending_tax"], name="lot_cost_pending_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(quantity_received__gt=0),
                        name="chk_lot_qty_received_gt_zero",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(quantity_remaining__gte=0),
                        name="chk_lot_qty_remaining_gte_zero",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(quantity_remaining__lte=models.F("quantity_received")),
                        name="chk_lot_remaining_lte_received",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(unit_cost__gte=0),
                        name="chk_lot_unit_cost_gte_zero",
                    ),
                ],
            },
        ),
    ]
