# accounting/models/payment_fee.py

from __future__ import annotations

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models


class PaymentFee(models.Model):
    """
    Card / gateway fee schedule, keyed by (payment_method, installments).

    fee = gross_after_discount * fee_percent / 100 + fee_fixed
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    payment_method = models.CharField(max_length=32)
    installments = models.PositiveSmallIntegerField(default=1)

    fee_percent = models.DecimalField(max_digits=6, decimal_places=3, default=Decimal("0.000"))
    fee_fixed = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    class Meta:
        ordering = ["payment_method", "installments"]
        constraints = [
            models.UniqueConstraint(
                fields=["payment_method", "installments"],
                name="unique_payment_fee_method_installments",
            ),
        ]

    def clean(self):
        if self.fee_percent is None or self.fee_percent < Decimal("0"):
            raise ValidationError({"fee_percent": "fee_percent cannot be negative"})
        if self.fee_fixed is None or self.fee_fixed < Decimal("0"):
            raise ValidationError({"fee_fixed": "fee_fixed cannot be negative"})

    def save(self, *args, **kwargs):
        self.payment_method = (self.payment_method or "").strip().lower()
        self.full_clean()
        return super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.payment_method} x{self.installments}: {self.fee_percent}% + {self.fee_fixed}"
