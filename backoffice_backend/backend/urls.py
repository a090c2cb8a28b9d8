# backend/urls.py
"""
PROJECT URLS

Everything under /api/ needs a JWT except the index, the health check
and the schema/docs.

- /api/health/ reports DB reachability plus the active inventory policy
  (oversell handling, costing currency) so a deploy can be sanity-checked.
- The admin mount point comes from settings.ADMIN_PATH.
"""

from __future__ import annotations

from django.conf import settings
from django.contrib import admin
from django.db import DatabaseError, connections
from django.urls import include, path
from django.views.generic import RedirectView
from drf_spectacular.utils import extend_schema
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

# Endpoint index per app, shown at GET /api/.
MODULE_INDEX = {
    "products": {
        "catalog": "/api/products/products/",
        "variants": "/api/products/variants/",
        "lots": "/api/products/lots/",
        "stock_ledger": "/api/products/ledger/",
        "stock_audit": "/api/products/stock-audit/",
        "stock_adjustments": "/api/products/stock-adjustments/",
    },
    "purchases": {
        "suppliers": "/api/purchases/suppliers/",
        "orders": "/api/purchases/orders/",
    },
    "sales": {
        "customers": "/api/sales/customers/",
        "sales": "/api/sales/sales/",
    },
    "accounting": {
        "fixed_cost_pools": "/api/accounting/fixed-cost-pools/",
        "payment_fees": "/api/accounting/payment-fees/",
        "margin_by_product": "/api/accounting/reports/margin-by-product/",
        "margin_by_customer": "/api/accounting/reports/margin-by-customer/",
        "margin_by_purchase_order": "/api/accounting/reports/margin-by-purchase-order/",
    },
}


@extend_schema(tags=["meta"], responses={200: dict})
@api_view(["GET"])
@permission_classes([AllowAny])
def api_index(request):
    return Response(
        {
            "service": "back-office",
            "auth": {
                "jwt_create": "/api/auth/jwt/create/",
                "jwt_refresh": "/api/auth/jwt/refresh/",
            },
            "docs": "/api/docs/",
            "modules": MODULE_INDEX,
        }
    )


@extend_schema(tags=["meta"], responses={200: dict, 503: dict})
@api_view(["GET"])
@permission_classes([AllowAny])
def health_check(request):
    inventory = getattr(settings, "INVENTORY", {}) or {}
    payload = {
        "oversell_policy": inventory.get("OVERSELL_POLICY", "allow"),
        "currency": inventory.get("DEFAULT_CURRENCY", "BRL"),
    }

    try:
        with connections["default"].cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
    except DatabaseError as exc:
        return Response({"status": "degraded", "db": "down", "error": str(exc), **payload}, status=503)

    return Response({"status": "ok", "db": "ok", **payload})


ADMIN_PATH = getattr(settings, "ADMIN_PATH", "admin/")
if not ADMIN_PATH.endswith("/"):
    ADMIN_PATH = f"{ADMIN_PATH}/"


api_urlpatterns = [
    path("", api_index, name="api-index"),
    path("health/", health_check, name="health-check"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    path("docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),
    path("auth/jwt/create/", TokenObtainPairView.as_view(), name="jwt-create"),
    path("auth/jwt/refresh/", TokenRefreshView.as_view(), name="jwt-refresh"),
    path("products/", include("products.urls")),
    path("purchases/", include("purchases.api.urls")),
    path("sales/", include("sales.api.urls")),
    path("accounting/", include("accounting.api.urls")),
]

urlpatterns = [
    path(ADMIN_PATH, admin.site.urls),
    path("", RedirectView.as_view(url="/api/docs/", permanent=False), name="root"),
    path("api/", include(api_urlpatterns)),
]
