# sales/api/urls.py

"""
SALES API URLS

    /api/sales/customers/                      customers (CRUD)
    /api/sales/sales/                          list / create (saga)
    /api/sales/sales/<uuid>/                   retrieve / update (saga) / delete (reversal)
    /api/sales/sales/<uuid>/reconcile-costs/   manual COGS reconciliation
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from sales.api.views import CustomerViewSet, SaleViewSet

router = DefaultRouter()
router.register(r"customers", CustomerViewSet, basename="customers")
router.register(r"sales", SaleViewSet, basename="sales")

urlpatterns = [
    path("", include(router.urls)),
]
