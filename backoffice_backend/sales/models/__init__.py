# sales/models/__init__.py

"""
SALES MODELS PACKAGE EXPORTS

Purpose:
- Central export surface for sales app models.
"""

from .customer import Customer
from .lot_consumption import LotConsumption
from .sale import Sale
from .sale_line_item import SaleLineItem

__all__ = [
    "Customer",
    "Sale",
    "SaleLineItem",
    "LotConsumption",
]
