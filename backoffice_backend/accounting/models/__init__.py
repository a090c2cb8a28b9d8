# accounting/models/__init__.py

"""
ACCOUNTING MODELS PACKAGE EXPORTS

Note:
- Keep this file *imports-only* (no business logic).
- Do NOT import services from models anywhere (models must stay pure).
"""

from accounting.models.fixed_cost import FixedCostPool, SaleFixedCost
from accounting.models.payment_fee import PaymentFee

__all__ = [
    "FixedCostPool",
    "SaleFixedCost",
    "PaymentFee",
]
