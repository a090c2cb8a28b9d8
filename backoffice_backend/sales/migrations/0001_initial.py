"""
======================================================
PATH: sales/migrations/0001_initial.py
======================================================
MIGRATION: CUSTOMERS, SALES, LINE ITEMS, LOT CONSUMPTION
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


def _money_field(**kwargs):
    return models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00"), **kwargs
    )


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("products", "0002_inventorylot"),
    ]

    operations = [
        migrations.CreateModel(
            name="Customer",
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
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["name"],
                "indexes": [
                    models.Index(fields=["name"], name="customer_name_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Sale",
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
                    "sale_date",
                    models.DateField(default=django.utils.timezone.localdate, db_index=True),
                ),
                (
                    "payment_method",
                    models.CharField(
                        max_length=32,
                        choices=[
                            ("pix", "Pix"),
                            ("cash", "Cash"),
                            ("debit", "Debit card"),
                            ("credit", "Credit card"),
                            ("transfer", "Bank transfer"),
                        ],
                        default="pix",
                    ),
                ),
                ("installments", models.PositiveSmallIntegerField(default=1)),
                ("channel", models.CharField(max_length=64, blank=True, default="")),
                ("notes", models.TextField(blank=True, default="")),
                ("gross_amount", _money_field()),
                (
                    "discount_percent",
                    models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00")),
                ),
                ("discount_amount", _money_field()),
                ("gross_after_discount", _money_field()),
                ("payment_fee", _money_field()),
                ("shipping", _money_field()),
                ("fixed_costs_applied", _money_field()),
                ("product_cost", _money_field(help_text="FIFO COGS across all line items.")),
                ("net_profit", _money_field()),
                (
                    "margin_percent",
                    models.DecimalField(max_digits=9, decimal_places=2, default=Decimal("0.00")),
                ),
                ("is_preorder", models.BooleanField(default=False)),
                ("cogs_pending", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "customer",
                    models.ForeignKey(
                        to="sales.customer",
                        null=True,
                        blank=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="sales",
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        to=settings.AUTH_USER_MODEL,
                        null=True,
                        blank=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="sales",
                    ),
                ),
            ],
            options={
                "ordering": ["-sale_date", "-created_at"],
                "indexes": [
                    models.Index(fields=["sale_date"], name="sale_date_idx"),
                    models.Index(fields=["customer", "sale_date"], name="sale_customer_date_idx"),
                    models.Index(fields=["cogs_pending"], name="sale_cogs_pending_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(discount_percent__gte=Decimal("0.00"))
                        & models.Q(discount_percent__lte=Decimal("100.00")),
                        name="sale_discount_percent_0_100",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(installments__gte=1),
                        name="sale_installments_gte_one",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="SaleLineItem",
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
                ("product_label_snapshot", models.CharField(max_length=255)),
                ("variant_label_snapshot", models.CharField(max_length=128, blank=True, default="")),
                ("size_snapshot", models.CharField(max_length=32, blank=True, default="")),
                ("quantity", models.PositiveIntegerField()),
                ("unit_price", models.DecimalField(max_digits=12, decimal_places=2)),
                ("cost_amount", _money_field(help_text="FIFO cost booked for this line (snapshot).")),
                (
                    "quantity_unfulfilled",
                    models.PositiveIntegerField(
                        default=0,
                        help_text="Units sold beyond available lot stock (zero cost).",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "sale",
                    models.ForeignKey(
                        to="sales.sale",
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
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="sale_line_items",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at", "id"],
                "indexes": [
                    models.Index(fields=["sale", "created_at"], name="saleline_sale_created_idx"),
                    models.Index(fields=["variant"], name="saleline_variant_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(quantity__gt=0),
                        name="sale_line_quantity_gt_zero",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(quantity_unfulfilled__lte=models.F("quantity")),
                        name="sale_line_unfulfilled_lte_quantity",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="LotConsumption",
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
                ("quantity_consumed", models.PositiveIntegerField()),
                ("unit_cost_at_consumption", models.DecimalField(max_digits=14, decimal_places=4)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "sale_item",
                    models.ForeignKey(
                        to="sales.salelineitem",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="lot_consumptions",
                    ),
                ),
                (
                    "lot",
                    models.ForeignKey(
                        to="products.inventorylot",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="consumptions",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at", "id"],
                "indexes": [
                    models.Index(fields=["sale_item"], name="lotcons_sale_item_idx"),
                    models.Index(fields=["lot"], name="lotcons_lot_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(quantity_consumed__gt=0),
                        name="lot_consumption_qty_gt_zero",
                    ),
                ],
            },
        ),
    ]
