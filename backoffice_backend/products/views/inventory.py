# products/views/inventory.py

"""
INVENTORY VIEWS

Purpose:
- Read-only lot listing (FIFO order) and stock ledger listing
- Manual stock adjustment (ledger only; lots are never adjusted by hand)
- Stock audit: lots vs ledger per variant
"""

import logging

from drf_spectacular.utils import OpenApiResponse, extend_schema, extend_schema_view
from rest_framework import status, viewsets
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from products.models import InventoryLot, ProductVariant, StockLedgerEntry
from products.serializers import (
    InventoryLotSerializer,
    StockAdjustmentSerializer,
    StockLedgerEntrySerializer,
)
from products.services.stock_audit import audit_stock
from products.services.stock_ledger import record_adjustment

logger = logging.getLogger(__name__)


@extend_schema_view(
    list=extend_schema(tags=["inventory"]),
    retrieve=extend_schema(tags=["inventory"]),
)
class InventoryLotViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = InventoryLotSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ["variant", "purchase_order", "cost_pending_tax"]

    def get_queryset(self):
        qs = InventoryLot.objects.select_related("variant").order_by(
            "received_at", "created_at", "id"
        )
        if self.request.query_params.get("available") in ("1", "true", "True"):
            qs = qs.filter(quantity_remaining__gt=0)
        return qs


@extend_schema_view(
    list=extend_schema(tags=["inventory"]),
    retrieve=extend_schema(tags=["inventory"]),
)
class StockLedgerEntryViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = StockLedgerEntrySerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ["variant", "entry_type", "reference_type", "reference_id"]

    def get_queryset(self):
        return StockLedgerEntry.objects.order_by("-created_at")


class StockAdjustmentView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        tags=["inventory"],
        request=StockAdjustmentSerializer,
        responses={201: StockLedgerEntrySerializer},
    )
    def post(self, request):
        s = StockAdjustmentSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        if not ProductVariant.objects.filter(id=data["variant_id"]).exists():
            return Response({"detail": "Variant not found"}, status=status.HTTP_404_NOT_FOUND)

        entry = record_adjustment(
            variant=data["variant_id"],
            quantity=data["quantity"],
            note=data.get("note", ""),
        )

        logger.info(
            "Manual stock adjustment",
            extra={
                "variant_id": str(data["variant_id"]),
                "quantity": data["quantity"],
                "user_id": getattr(request.user, "id", None),
            },
        )
        return Response(StockLedgerEntrySerializer(entry).data, status=status.HTTP_201_CREATED)


class StockAuditView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        tags=["inventory"],
        responses={200: OpenApiResponse(description="Lots vs ledger per variant")},
    )
    def get(self, request):
        return Response(audit_stock(), status=status.HTTP_200_OK)
