# accounting/apps.py

"""
ACCOUNTING APP CONFIG

Fixed-cost pools, payment fee table and margin reporting.
"""

from django.apps import AppConfig


class AccountingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "accounting"
    verbose_name = "Accounting & Margins"
