# accounting/api/urls.py

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from accounting.api.views import (
    FixedCostPoolViewSet,
    MarginByCustomerView,
    MarginByProductView,
    MarginByPurchaseOrderView,
    PaymentFeeViewSet,
)

router = DefaultRouter()
router.register("fixed-cost-pools", FixedCostPoolViewSet, basename="fixed-cost-pool")
router.register("payment-fees", PaymentFeeViewSet, basename="payment-fee")

urlpatterns = [
    # Reports
    path("reports/margin-by-product/", MarginByProductView.as_view(), name="margin-by-product"),
    path("reports/margin-by-customer/", MarginByCustomerView.as_view(), name="margin-by-customer"),
    path(
        "reports/margin-by-purchase-order/",
        MarginByPurchaseOrderView.as_view(),
        name="margin-by-purchase-order",
    ),
    # Router endpoints
    path("", include(router.urls)),
]
