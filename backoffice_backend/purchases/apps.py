# purchases/apps.py

"""
PURCHASES APP CONFIG

Suppliers, purchase orders and arrival-time lot creation.
"""

from django.apps import AppConfig


class PurchasesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "purchases"
    verbose_name = "Purchasing"
