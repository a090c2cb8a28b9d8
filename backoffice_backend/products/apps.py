# products/apps.py

"""
PRODUCTS APP CONFIG

Catalog (products + variants), inventory lots (FIFO cost basis)
and the stock ledger (quantity-of-truth).
"""

from django.apps import AppConfig


class ProductsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "products"
    verbose_name = "Products & Inventory"
