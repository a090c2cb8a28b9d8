# accounting/api/serializers/__init__.py

from .fixed_costs import FixedCostPoolSerializer, SaleFixedCostSerializer
from .payment_fees import PaymentFeeSerializer

__all__ = [
    "FixedCostPoolSerializer",
    "SaleFixedCostSerializer",
    "PaymentFeeSerializer",
]
