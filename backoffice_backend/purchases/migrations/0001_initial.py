"""
======================================================
PATH: purchases/migrations/0001_initial.py
======================================================
MIGRATION: SUPPLIERS + PURCHASE ORDERS
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("products", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Supplier",
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
                ("name", models.CharField(max_length=200)),
                ("phone", models.CharField(max_length=50, blank=True, default="")),
                ("notes", models.TextField(blank=True, default="")),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["name"],
                "indexes": [
                    models.Index(fields=["name"], name="supplier_name_idx"),
                    models.Index(fields=["is_active"], name="supplier_active_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PurchaseOrder",
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
                ("reference", models.CharField(max_length=64, blank=True, default="")),
                ("order_date", models.DateField(default=django.utils.timezone.localdate)),
                (
                    "status",
                    models.CharField(
                        max_length=20,
                        choices=[
                            ("draft", "Draft"),
                            ("bought", "Bought"),
                            ("shipped", "Shipped"),
                            ("arrived", "Arrived"),
                        ],
                        default="draft",
                    ),
                ),
                (
                    "source",
                    models.CharField(
                        max_length=20,
                        choices=[("domestic", "Domestic"), ("international", "International")],
                        default="domestic",
                    ),
                ),
                (
                    "shipping_mode",
                    models.CharField(
                        max_length=20,
                        choices=[
                            ("remittance", "Remittance"),
                            ("offline", "Offline"),
                            ("forwarder", "Forwarder"),
                        ],
                        null=True,
                        blank=True,
                    ),
                ),
                (
                    "freight",
                    models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00")),
                ),
                (
                    "extra_fees",
                    models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00")),
                ),
                (
                    "duty_cost",
                    models.DecimalField(
                        max_digits=14,
                        decimal_places=2,
                        null=True,
                        blank=True,
                        default=None,
                        help_text="Customs duty; NULL while not yet known.",
                    ),
                ),
                ("notes", models.TextField(blank=True, default="")),
                ("arrived_at", models.DateTimeField(null=True, blank=True)),
                ("stock_posted_at", models.DateTimeField(null=True, blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        to=settings.AUTH_USER_MODEL,
                        null=True,
                        blank=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="purchase_orders_created",
                    ),
                ),
                (
                    "supplier",
                    models.ForeignKey(
                        to="purchases.supplier",
                        null=True,
                        blank=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="purchase_orders",
                    ),
                ),
            ],
            options={
                "ordering": ["-order_date", "-created_at"],
                "indexes": [
                    models.Index(fields=["status", "order_date"], name="po_status_date_idx"),
                    models.Index(fields=["supplier", "order_date"], name="po_supplier_date_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(freight__gte=Decimal("0.00")),
                        name="purchase_order_freight_nonnegative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(extra_fees__gte=Decimal("0.00")),
                        name="purchase_order_extra_fees_nonnegative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(duty_cost__isnull=True)
                        | models.Q(duty_cost__gte=Decimal("0.00")),
                        name="purchase_order_duty_cost_nonnegative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PurchaseOrderItem",
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
                ("description", models.CharField(max_length=255, blank=True, default="")),
                ("quantity", models.PositiveIntegerField()),
                ("unit_cost", models.DecimalField(max_digits=14, decimal_places=4)),
                ("currency", models.CharField(max_length=3, default="BRL")),
                (
                    "exchange_rate",
                    models.DecimalField(
                        max_digits=14,
                        decimal_places=6,
                        default=Decimal("1.000000"),
                        help_text="Units of default currency per unit of `currency`.",
                    ),
                ),
                (
                    "purchase_order",
                    models.ForeignKey(
                        to="purchases.purchaseorder",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                    ),
                ),
                (
                    "variant",
                    models.ForeignKey(
                        to="products.productvariant",
                        null=True,
                        blank=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="purchase_items",
                    ),
                ),
            ],
            options={
                "ordering": ["id"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(quantity__gt=0),
                        name="purchase_item_quantity_gt_zero",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(unit_cost__gte=Decimal("0")),
                        name="purchase_item_unit_cost_nonnegative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(exchange_rate__gt=Decimal("0")),
                        name="purchase_item_exchange_rate_gt_zero",
                    ),
                ],
            },
        ),
    ]
