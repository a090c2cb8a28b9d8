# sales/services/financials.py

"""
======================================================
PATH: sales/services/financials.py
======================================================
FINANCIAL DERIVATION (PURE)

    gross                = Σ quantity × unit_price
    discount_amount      = gross × discount_percent / 100
    gross_after_discount = gross − discount_amount
    net_profit           = gross_after_discount − fee − shipping − fixed_costs − cogs
    margin_percent       = net_profit / gross_after_discount × 100   (0 when revenue is 0)

Rules:
- No database access; every input is passed in
- Each component is quantized to 2dp (ROUND_HALF_UP) BEFORE the subtraction,
  so the net-profit identity holds exactly on the stored values
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal

TWOPLACES = Decimal("0.01")
HUNDRED = Decimal("100")


def _money(v) -> Decimal:
    return Decimal(str(v if v is not None else "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class SaleFinancials:
    gross_amount: Decimal
    discount_percent: Decimal
    discount_amount: Decimal
    gross_after_discount: Decimal
    payment_fee: Decimal
    shipping: Decimal
    fixed_costs_applied: Decimal
    product_cost: Decimal
    net_profit: Decimal
    margin_percent: Decimal

    def as_model_fields(self) -> dict:
        return asdict(self)


def gross_amount(lines) -> Decimal:
    """
    lines: iterable of (quantity, unit_price)
    """
    total = Decimal("0")
    for quantity, unit_price in lines:
        total += Decimal(int(quantity or 0)) * Decimal(str(unit_price or "0"))
    return _money(total)


def apply_discount(*, gross, discount_percent) -> tuple[Decimal, Decimal]:
    """
    Returns (discount_amount, gross_after_discount).
    """
    gross = _money(gross)
    pct = _money(discount_percent)
    if pct < Decimal("0") or pct > HUNDRED:
        raise ValueError("discount_percent must be between 0 and 100")

    discount = _money(gross * pct / HUNDRED)
    return discount, gross - discount


def derive_profit(*, gross_after_discount, fee, shipping, fixed_costs, cogs) -> tuple[Decimal, Decimal]:
    """
    Returns (net_profit, margin_percent).
    """
    revenue = _money(gross_after_discount)
    net = revenue - _money(fee) - _money(shipping) - _money(fixed_costs) - _money(cogs)

    if revenue > Decimal("0"):
        margin = _money(net / revenue * HUNDRED)
    else:
        margin = Decimal("0.00")

    return net, margin


def derive_financials(
    *,
    lines,
    discount_percent=Decimal("0"),
    payment_fee=Decimal("0"),
    shipping=Decimal("0"),
    fixed_costs=Decimal("0"),
    cogs=Decimal("0"),
) -> SaleFinancials:
    gross = gross_amount(lines)
    discount, revenue = apply_discount(gross=gross, discount_percent=discount_percent)
    net, margin = derive_profit(
        gross_after_discount=revenue,
        fee=payment_fee,
        shipping=shipping,
        fixed_costs=fixed_costs,
        cogs=cogs,
    )

    return SaleFinancials(
        gross_amount=gross,
        discount_percent=_money(discount_percent),
        discount_amount=discount,
        gross_after_discount=revenue,
        payment_fee=_money(payment_fee),
        shipping=_money(shipping),
        fixed_costs_applied=_money(fixed_costs),
        product_cost=_money(cogs),
        net_profit=net,
        margin_percent=margin,
    )
