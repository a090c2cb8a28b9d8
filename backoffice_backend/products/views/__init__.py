# products/views/__init__.py

"""
Products views package exports.

Purpose:
- Central export point for router imports.
"""

from .inventory import (
    InventoryLotViewSet,
    StockAdjustmentView,
    StockAuditView,
    StockLedgerEntryViewSet,
)
from .product import ProductVariantViewSet, ProductViewSet

__all__ = [
    "InventoryLotViewSet",
    "ProductVariantViewSet",
    "ProductViewSet",
    "StockAdjustmentView",
    "StockAuditView",
    "StockLedgerEntryViewSet",
]
