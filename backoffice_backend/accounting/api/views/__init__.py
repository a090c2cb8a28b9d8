# accounting/api/views/__init__.py

from .fixed_costs import FixedCostPoolViewSet, PaymentFeeViewSet
from .margin_reports import (
    MarginByCustomerView,
    MarginByProductView,
    MarginByPurchaseOrderView,
)

__all__ = [
    "FixedCostPoolViewSet",
    "PaymentFeeViewSet",
    "MarginByProductView",
    "MarginByCustomerView",
    "MarginByPurchaseOrderView",
]
