# purchases/api/urls.py

from django.urls import path

from purchases.api.views import (
    PurchaseOrderDetailView,
    PurchaseOrderDutyCostView,
    PurchaseOrderListCreateView,
    PurchaseOrderRepairView,
    PurchaseOrderStatusView,
    SupplierListCreateView,
)

urlpatterns = [
    path("suppliers/", SupplierListCreateView.as_view(), name="purchase-suppliers"),
    path("orders/", PurchaseOrderListCreateView.as_view(), name="purchase-orders"),
    path(
        "orders/<uuid:order_id>/",
        PurchaseOrderDetailView.as_view(),
        name="purchase-order-detail",
    ),
    path(
        "orders/<uuid:order_id>/status/",
        PurchaseOrderStatusView.as_view(),
        name="purchase-order-status",
    ),
    path(
        "orders/<uuid:order_id>/duty-cost/",
        PurchaseOrderDutyCostView.as_view(),
        name="purchase-order-duty-cost",
    ),
    path(
        "orders/<uuid:order_id>/repair/",
        PurchaseOrderRepairView.as_view(),
        name="purchase-order-repair",
    ),
]
