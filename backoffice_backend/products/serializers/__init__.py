# products/serializers/__init__.py

from .inventory import (
    InventoryLotSerializer,
    StockAdjustmentSerializer,
    StockLedgerEntrySerializer,
)
from .product import ProductSerializer, ProductVariantSerializer

__all__ = [
    "InventoryLotSerializer",
    "ProductSerializer",
    "ProductVariantSerializer",
    "StockAdjustmentSerializer",
    "StockLedgerEntrySerializer",
]
