# accounting/api/views/fixed_costs.py

from django.db.models import ProtectedError
from drf_spectacular.utils import extend_schema, extend_schema_view
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounting.api.serializers import (
    FixedCostPoolSerializer,
    PaymentFeeSerializer,
    SaleFixedCostSerializer,
)
from accounting.models import FixedCostPool, PaymentFee


@extend_schema_view(
    list=extend_schema(tags=["accounting"]),
    retrieve=extend_schema(tags=["accounting"]),
    create=extend_schema(tags=["accounting"]),
    update=extend_schema(tags=["accounting"]),
    partial_update=extend_schema(tags=["accounting"]),
    destroy=extend_schema(tags=["accounting"]),
)
class FixedCostPoolViewSet(viewsets.ModelViewSet):
    """
    Fixed-cost pools. A pool that was drawn by any sale cannot be deleted;
    deactivate it instead.
    """

    queryset = FixedCostPool.objects.all().order_by("name")
    serializer_class = FixedCostPoolSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ["is_active"]

    def destroy(self, request, *args, **kwargs):
        pool = self.get_object()
        try:
            pool.delete()
        except ProtectedError:
            return Response(
                {"detail": "Pool has usage records; deactivate it instead."},
                status=status.HTTP_409_CONFLICT,
            )
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(tags=["accounting"], responses=SaleFixedCostSerializer(many=True))
    @action(detail=True, methods=["get"], url_path="usages")
    def usages(self, request, pk=None):
        pool = self.get_object()
        rows = pool.usages.select_related("pool").order_by("-created_at")
        return Response(SaleFixedCostSerializer(rows, many=True).data, status=status.HTTP_200_OK)


@extend_schema_view(
    list=extend_schema(tags=["accounting"]),
    retrieve=extend_schema(tags=["accounting"]),
    create=extend_schema(tags=["accounting"]),
    update=extend_schema(tags=["accounting"]),
    partial_update=extend_schema(tags=["accounting"]),
    destroy=extend_schema(tags=["accounting"]),
)
class PaymentFeeViewSet(viewsets.ModelViewSet):
    queryset = PaymentFee.objects.all().order_by("payment_method", "installments")
    serializer_class = PaymentFeeSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ["payment_method"]
