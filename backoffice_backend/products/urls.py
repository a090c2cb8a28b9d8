# products/urls.py

"""
PRODUCTS URLS

Purpose:
- Register catalog + inventory routes under /api/products/

Explicit paths are listed BEFORE router URLs so they are never
shadowed by a router detail route.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from products.views import (
    InventoryLotViewSet,
    ProductVariantViewSet,
    ProductViewSet,
    StockAdjustmentView,
    StockAuditView,
    StockLedgerEntryViewSet,
)

router = DefaultRouter()

router.register(r"products", ProductViewSet, basename="products")
router.register(r"variants", ProductVariantViewSet, basename="variants")
router.register(r"lots", InventoryLotViewSet, basename="lots")
router.register(r"ledger", StockLedgerEntryViewSet, basename="stock-ledger")

urlpatterns = [
    path("stock-audit/", StockAuditView.as_view(), name="stock-audit"),
    path("stock-adjustments/", StockAdjustmentView.as_view(), name="stock-adjustments"),
    path("", include(router.urls)),
]
