# accounting/services/payment_fees.py

"""
PAYMENT FEE LOOKUP

fee = gross_after_discount * fee_percent / 100 + fee_fixed

Looked up by (payment_method, installments). No matching row means
the payment method carries no fee.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from accounting.models import PaymentFee

TWOPLACES = Decimal("0.01")


def _money(v) -> Decimal:
    return Decimal(str(v or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def find_payment_fee(*, payment_method: str, installments: int = 1):
    method = (payment_method or "").strip().lower()
    return PaymentFee.objects.filter(
        payment_method=method,
        installments=int(installments or 1),
    ).first()


def payment_fee_for(*, payment_method: str, installments: int, gross_after_discount) -> Decimal:
    row = find_payment_fee(payment_method=payment_method, installments=installments)
    if row is None:
        return Decimal("0.00")

    base = Decimal(str(gross_after_discount or "0"))
    return _money(base * Decimal(row.fee_percent) / Decimal("100") + Decimal(row.fee_fixed))
