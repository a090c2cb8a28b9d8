# sales/models/sale.py

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from .customer import Customer

User = settings.AUTH_USER_MODEL


class Sale(models.Model):
    """
    Financial record of one sale.

    GUARANTEES:
    - net_profit == gross_after_discount - payment_fee - shipping
                    - fixed_costs_applied - product_cost   (exact, 2dp)
    - product_cost is the FIFO COGS of the lots consumed (zero for preorders)
    - Lot quantities are mutated ONLY via the sale saga / reversal engine
    - Preorders consume no lots and stay cogs_pending until reconciled

    cogs_pending:
    - True when any consumed lot still had a deferred duty cost,
      when a line could not be fully served from lots (oversell),
      or when the sale is a preorder.
    """

    PAYMENT_PIX = "pix"
    PAYMENT_CASH = "cash"
    PAYMENT_DEBIT = "debit"
    PAYMENT_CREDIT = "credit"
    PAYMENT_TRANSFER = "transfer"

    PAYMENT_METHODS = [
        (PAYMENT_PIX, "Pix"),
        (PAYMENT_CASH, "Cash"),
        (PAYMENT_DEBIT, "Debit card"),
        (PAYMENT_CREDIT, "Credit card"),
        (PAYMENT_TRANSFER, "Bank transfer"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    customer = models.ForeignKey(
        Customer,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sales",
    )

    sale_date = models.DateField(default=timezone.localdate, db_index=True)

    payment_method = models.CharField(
        max_length=32,
        choices=PAYMENT_METHODS,
        default=PAYMENT_PIX,
    )
    installments = models.PositiveSmallIntegerField(default=1)

    channel = models.CharField(max_length=64, blank=True, default="")
    notes = models.TextField(blank=True, default="")

    gross_amount = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )
    discount_percent = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal("0.00")
    )
    discount_amount = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )
    gross_after_discount = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )
    payment_fee = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )
    shipping = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )
    fixed_costs_applied = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )
    product_cost = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="FIFO COGS across all line items.",
    )
    net_profit = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )
    margin_percent = models.DecimalField(
        max_digits=9, decimal_places=2, default=Decimal("0.00")
    )

    is_preorder = models.BooleanField(default=False)
    cogs_pending = models.BooleanField(default=False)

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sales",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-sale_date", "-created_at"]
        indexes = [
            models.Index(fields=["sale_date"], name="sale_date_idx"),
            models.Index(fields=["customer", "sale_date"], name="sale_customer_date_idx"),
            models.Index(fields=["cogs_pending"], name="sale_cogs_pending_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(discount_percent__gte=Decimal("0.00"))
                & models.Q(discount_percent__lte=Decimal("100.00")),
                name="sale_discount_percent_0_100",
            ),
            models.CheckConstraint(
                condition=models.Q(installments__gte=1),
                name="sale_installments_gte_one",
            ),
        ]

    def expected_net_profit(self) -> Decimal:
        return (
            Decimal(self.gross_after_discount)
            - Decimal(self.payment_fee)
            - Decimal(self.shipping)
            - Decimal(self.fixed_costs_applied)
            - Decimal(self.product_cost)
        )

    def clean(self):
        for f in ("gross_amount", "payment_fee", "shipping", "fixed_costs_applied", "product_cost"):
            v = getattr(self, f)
            if v is None or Decimal(v) < Decimal("0.00"):
                raise ValidationError({f: f"{f} cannot be negative"})

        if Decimal(self.net_profit) != self.expected_net_profit():
            raise ValidationError(
                {"net_profit": "net_profit must equal gross_after_discount - fee - shipping - fixed costs - product cost"}
            )

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    def __str__(self):
        return f"Sale {str(self.id)[:8]} | {self.sale_date} | {self.gross_after_discount}"
