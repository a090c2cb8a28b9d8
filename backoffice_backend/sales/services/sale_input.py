# sales/services/sale_input.py

"""
SALE INPUT (VALIDATED PAYLOAD)

Plain value objects the saga works on. Serializers build these from
request data; services never read request dicts directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Optional

from django.utils import timezone

from sales.services.exceptions import InvalidSaleInput


@dataclass(frozen=True)
class SaleLineInput:
    product_label: str
    quantity: int
    unit_price: Decimal
    variant_id: Optional[object] = None
    variant_label: str = ""
    size: str = ""

    @property
    def is_stocked(self) -> bool:
        return self.variant_id is not None


@dataclass(frozen=True)
class SaleInput:
    items: tuple[SaleLineInput, ...]
    payment_method: str = "pix"
    installments: int = 1
    sale_date: date = field(default_factory=timezone.localdate)
    customer_id: Optional[object] = None
    discount_percent: Decimal = Decimal("0.00")
    shipping: Decimal = Decimal("0.00")
    payment_fee: Optional[Decimal] = None
    is_preorder: bool = False
    fixed_cost_pool_ids: tuple = ()
    channel: str = ""
    notes: str = ""

    def __post_init__(self):
        if not self.items:
            raise InvalidSaleInput("A sale needs at least one item")

        for line in self.items:
            if int(line.quantity or 0) <= 0:
                raise InvalidSaleInput("Item quantity must be greater than zero")
            if Decimal(line.unit_price) < Decimal("0"):
                raise InvalidSaleInput("Item unit_price cannot be negative")

        if int(self.installments or 0) < 1:
            raise InvalidSaleInput("installments must be at least 1")

        pct = Decimal(self.discount_percent)
        if pct < Decimal("0") or pct > Decimal("100"):
            raise InvalidSaleInput("discount_percent must be between 0 and 100")

        if Decimal(self.shipping) < Decimal("0"):
            raise InvalidSaleInput("shipping cannot be negative")

        if self.payment_fee is not None and Decimal(self.payment_fee) < Decimal("0"):
            raise InvalidSaleInput("payment_fee cannot be negative")

    @property
    def price_lines(self):
        return [(line.quantity, line.unit_price) for line in self.items]

    @classmethod
    def from_validated(cls, data: dict) -> "SaleInput":
        items = tuple(
            SaleLineInput(
                product_label=(it.get("product_label") or "").strip(),
                quantity=int(it["quantity"]),
                unit_price=Decimal(str(it["unit_price"])),
                variant_id=it.get("variant_id"),
                variant_label=(it.get("variant_label") or "").strip(),
                size=(it.get("size") or "").strip(),
            )
            for it in data.get("items") or []
        )

        return cls(
            items=items,
            payment_method=(data.get("payment_method") or "pix").strip().lower(),
            installments=int(data.get("installments") or 1),
            sale_date=data.get("sale_date") or timezone.localdate(),
            customer_id=data.get("customer_id"),
            discount_percent=Decimal(str(data.get("discount_percent") or "0")),
            shipping=Decimal(str(data.get("shipping") or "0")),
            payment_fee=(
                Decimal(str(data["payment_fee"]))
                if data.get("payment_fee") is not None
                else None
            ),
            is_preorder=bool(data.get("is_preorder", False)),
            fixed_cost_pool_ids=tuple(data.get("fixed_cost_pool_ids") or ()),
            channel=(data.get("channel") or "").strip(),
            notes=data.get("notes") or "",
        )
