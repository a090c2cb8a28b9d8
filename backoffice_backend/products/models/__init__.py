"""
PATH: products/models/__init__.py

Products models export surface.
"""

from .inventory_lot import InventoryLot
from .product import Product, ProductVariant
from .stock_ledger_entry import StockLedgerEntry

__all__ = [
    "Product",
    "ProductVariant",
    "InventoryLot",
    "StockLedgerEntry",
]
