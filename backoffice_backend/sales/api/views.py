# sales/api/views.py

"""
======================================================
PATH: sales/api/views.py
======================================================
SALES API (STAFF)

Sales are written ONLY through the saga / reversal services.

Saga outcome -> HTTP status:
    COMMITTED               201 (create) / 200 (update)
    COMPENSATED_FAILURE     404 SaleNotFound
                            409 InsufficientStock (oversell policy "reject")
                            400 anything else (sale not recorded)
    UNCOMPENSATED_FAILURE   500 with sale_id (recorded but incomplete)
======================================================
"""

from __future__ import annotations

from django.db.models import Q
from drf_spectacular.utils import extend_schema, extend_schema_view
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounting.services.exceptions import AccountingServiceError
from sales.api.serializers import (
    CustomerSerializer,
    SagaResultSerializer,
    SaleSerializer,
    SaleWriteSerializer,
)
from sales.models import Customer, Sale
from sales.services.cost_reconciliation import reconcile_sale_costs
from sales.services.exceptions import InsufficientStock, SaleNotFound
from sales.services.sale_reversal import delete_sale
from sales.services.sale_saga import SagaOutcome, record_sale, update_sale


def saga_status(result, *, success_status: int) -> int:
    if result.outcome == SagaOutcome.COMMITTED:
        return success_status
    if result.outcome == SagaOutcome.UNCOMPENSATED_FAILURE:
        return status.HTTP_500_INTERNAL_SERVER_ERROR
    if isinstance(result.error, SaleNotFound):
        return status.HTTP_404_NOT_FOUND
    if isinstance(result.error, InsufficientStock):
        return status.HTTP_409_CONFLICT
    return status.HTTP_400_BAD_REQUEST


@extend_schema_view(
    list=extend_schema(tags=["sales"]),
    retrieve=extend_schema(tags=["sales"]),
    create=extend_schema(tags=["sales"]),
    update=extend_schema(tags=["sales"]),
    partial_update=extend_schema(tags=["sales"]),
    destroy=extend_schema(tags=["sales"]),
)
class CustomerViewSet(viewsets.ModelViewSet):
    serializer_class = CustomerSerializer
    permission_classes = [IsAuthenticated]
    lookup_value_regex = "[0-9a-fA-F-]{36}"

    def get_queryset(self):
        qs = Customer.objects.all().order_by("name")
        q = (self.request.query_params.get("q") or "").strip()
        if q:
            qs = qs.filter(Q(name__icontains=q) | Q(phone__icontains=q))
        return qs


class SaleViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    Sales history plus saga-backed create / update / delete.

    Filters: customer, payment_method, cogs_pending, is_preorder,
    date_from / date_to (YYYY-MM-DD, on sale_date).
    """

    serializer_class = SaleSerializer
    permission_classes = [IsAuthenticated]
    lookup_value_regex = "[0-9a-fA-F-]{36}"
    filterset_fields = ["customer", "payment_method", "cogs_pending", "is_preorder"]

    def get_queryset(self):
        qs = (
            Sale.objects.all()
            .select_related("customer")
            .prefetch_related("items", "items__lot_consumptions", "items__lot_consumptions__lot")
            .order_by("-sale_date", "-created_at")
        )

        params = self.request.query_params
        date_from = (params.get("date_from") or "").strip()
        if date_from:
            qs = qs.filter(sale_date__gte=date_from)
        date_to = (params.get("date_to") or "").strip()
        if date_to:
            qs = qs.filter(sale_date__lte=date_to)

        return qs

    def _saga_response(self, result, *, success_status: int) -> Response:
        payload = result.as_dict()
        if result.committed:
            sale = Sale.objects.select_related("customer").get(id=result.sale_id)
            payload["sale"] = SaleSerializer(sale).data
        return Response(payload, status=saga_status(result, success_status=success_status))

    @extend_schema(
        tags=["sales"],
        request=SaleWriteSerializer,
        responses={201: SagaResultSerializer, 400: SagaResultSerializer, 409: SagaResultSerializer},
        description="Record a sale through the sale saga (FIFO consumption, financials, audit).",
    )
    def create(self, request):
        s = SaleWriteSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        result = record_sale(data=s.to_sale_input(), user=request.user)
        return self._saga_response(result, success_status=status.HTTP_201_CREATED)

    @extend_schema(
        tags=["sales"],
        request=SaleWriteSerializer,
        responses={200: SagaResultSerializer, 404: SagaResultSerializer},
        description="Reverse the sale's inventory effects and re-apply it with the new payload.",
    )
    def update(self, request, pk=None):
        s = SaleWriteSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        result = update_sale(sale_id=pk, data=s.to_sale_input(), user=request.user)
        return self._saga_response(result, success_status=status.HTTP_200_OK)

    @extend_schema(tags=["sales"], responses={200: None})
    def destroy(self, request, pk=None):
        try:
            result = delete_sale(sale_id=pk)
        except SaleNotFound as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)
        except AccountingServiceError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)

        return Response(result.as_dict(), status=status.HTTP_200_OK)

    @extend_schema(
        tags=["sales"],
        request=None,
        responses={200: None},
        description="Re-derive product cost from the current cost of the consumed lots.",
    )
    @action(detail=True, methods=["post"], url_path="reconcile-costs")
    def reconcile_costs(self, request, pk=None):
        try:
            summary = reconcile_sale_costs(sale_id=pk)
        except SaleNotFound as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)

        return Response(summary, status=status.HTTP_200_OK)
