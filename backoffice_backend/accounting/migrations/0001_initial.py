"""
======================================================
PATH: accounting/migrations/0001_initial.py
======================================================
MIGRATION: FIXED COST POOLS + PAYMENT FEE TABLE
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("sales", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="FixedCostPool",
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
                ("total_cost", models.DecimalField(max_digits=14, decimal_places=2)),
                ("total_units", models.PositiveIntegerField()),
                ("remaining_units", models.PositiveIntegerField()),
                (
                    "unit_cost",
                    models.DecimalField(
                        max_digits=14,
                        decimal_places=2,
                        editable=False,
                        default=Decimal("0.00"),
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["name"],
                "indexes": [
                    models.Index(fields=["is_active"], name="fixedcost_active_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(total_units__gt=0),
                        name="fixed_cost_total_units_gt_zero",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(remaining_units__lte=models.F("total_units")),
                        name="fixed_cost_remaining_lte_total",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(total_cost__gte=Decimal("0.00")),
                        name="fixed_cost_total_cost_nonnegative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="SaleFixedCost",
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
                ("unit_cost_applied", models.DecimalField(max_digits=14, decimal_places=2)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "sale",
                    models.ForeignKey(
                        to="sales.sale",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="fixed_cost_usages",
                    ),
                ),
                (
                    "pool",
                    models.ForeignKey(
                        to="accounting.fixedcostpool",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="usages",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=["sale", "pool"],
                        name="unique_fixed_cost_usage_per_sale_pool",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PaymentFee",
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
                ("payment_method", models.CharField(max_length=32)),
                ("installments", models.PositiveSmallIntegerField(default=1)),
                (
                    "fee_percent",
                    models.DecimalField(max_digits=6, decimal_places=3, default=Decimal("0.000")),
                ),
                (
                    "fee_fixed",
                    models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00")),
                ),
            ],
            options={
                "ordering": ["payment_method", "installments"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=["payment_method", "installments"],
                        name="unique_payment_fee_method_installments",
                    ),
                ],
            },
        ),
    ]
