# purchases/api/views.py

from django.db import transaction
from django.shortcuts import get_object_or_404
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from products.models import ProductVariant
from purchases.api.serializers import (
    DutyCostSerializer,
    PurchaseOrderCreateSerializer,
    PurchaseOrderSerializer,
    PurchaseOrderStatusSerializer,
    SupplierSerializer,
)
from purchases.models import PurchaseOrder, PurchaseOrderItem, Supplier
from purchases.services.arrival_service import (
    PurchaseArrivalError,
    repair_purchase_inventory,
    transition_purchase_order,
)
from purchases.services.cost_correction import CostCorrectionError, recompute_lot_cost


def _order_queryset():
    return PurchaseOrder.objects.select_related("supplier").prefetch_related(
        "items", "items__variant", "items__inventory_lot"
    )


class SupplierListCreateView(GenericAPIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["purchases"], responses=SupplierSerializer(many=True))
    def get(self, request):
        qs = Supplier.objects.filter(is_active=True).order_by("name")
        return Response(
            SupplierSerializer(qs, many=True).data, status=status.HTTP_200_OK
        )

    @extend_schema(
        tags=["purchases"],
        request=SupplierSerializer,
        responses={201: SupplierSerializer},
    )
    def post(self, request):
        s = SupplierSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        supplier = s.save()
        return Response(
            SupplierSerializer(supplier).data, status=status.HTTP_201_CREATED
        )


class PurchaseOrderListCreateView(GenericAPIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["purchases"], responses=PurchaseOrderSerializer(many=True))
    def get(self, request):
        qs = _order_queryset().order_by("-order_date", "-created_at")

        status_filter = (request.query_params.get("status") or "").strip().lower()
        if status_filter:
            qs = qs.filter(status=status_filter)

        return Response(
            PurchaseOrderSerializer(qs, many=True).data, status=status.HTTP_200_OK
        )

    @extend_schema(
        tags=["purchases"],
        request=PurchaseOrderCreateSerializer,
        responses={201: PurchaseOrderSerializer},
    )
    @transaction.atomic
    def post(self, request):
        s = PurchaseOrderCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        supplier = None
        if data.get("supplier_id"):
            try:
                supplier = Supplier.objects.get(id=data["supplier_id"], is_active=True)
            except Supplier.DoesNotExist:
                return Response(
                    {"detail": "Supplier not found"}, status=status.HTTP_400_BAD_REQUEST
                )

        order_fields = {
            "supplier": supplier,
            "reference": data.get("reference", ""),
            "source": data["source"],
            "shipping_mode": data.get("shipping_mode"),
            "freight": data.get("freight"),
            "extra_fees": data.get("extra_fees"),
            "duty_cost": data.get("duty_cost"),
            "notes": data.get("notes", ""),
            "created_by": request.user,
        }
        if data.get("order_date"):
            order_fields["order_date"] = data["order_date"]

        order = PurchaseOrder.objects.create(**order_fields)

        for line in data["items"]:
            variant = None
            if line.get("variant_id"):
                try:
                    variant = ProductVariant.objects.get(id=line["variant_id"])
                except ProductVariant.DoesNotExist:
                    transaction.set_rollback(True)
                    return Response(
                        {"detail": f"Variant not found: {line['variant_id']}"},
                        status=status.HTTP_400_BAD_REQUEST,
                    )

            PurchaseOrderItem.objects.create(
                purchase_order=order,
                variant=variant,
                description=line.get("description", ""),
                quantity=line["quantity"],
                unit_cost=line["unit_cost"],
                currency=line.get("currency") or "BRL",
                exchange_rate=line.get("exchange_rate"),
            )

        order = _order_queryset().get(id=order.id)
        return Response(
            PurchaseOrderSerializer(order).data, status=status.HTTP_201_CREATED
        )


class PurchaseOrderDetailView(GenericAPIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["purchases"], responses=PurchaseOrderSerializer)
    def get(self, request, order_id):
        order = get_object_or_404(_order_queryset(), id=order_id)
        return Response(PurchaseOrderSerializer(order).data, status=status.HTTP_200_OK)


class PurchaseOrderStatusView(GenericAPIView):
    """
    Forward-only status change; reaching "arrived" creates the lots.
    """

    permission_classes = [IsAuthenticated]
    serializer_class = PurchaseOrderStatusSerializer

    @extend_schema(tags=["purchases"], request=PurchaseOrderStatusSerializer)
    def post(self, request, order_id):
        s = self.get_serializer(data=request.data)
        s.is_valid(raise_exception=True)

        try:
            result = transition_purchase_order(
                purchase_order_id=order_id,
                new_status=s.validated_data["status"],
            )
        except PurchaseArrivalError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(result, status=status.HTTP_200_OK)


class PurchaseOrderDutyCostView(GenericAPIView):
    """
    Supply a deferred customs duty: reprices the order's lots and flags
    affected sales as cost-pending.
    """

    permission_classes = [IsAuthenticated]
    serializer_class = DutyCostSerializer

    @extend_schema(tags=["purchases"], request=DutyCostSerializer)
    def post(self, request, order_id):
        s = self.get_serializer(data=request.data)
        s.is_valid(raise_exception=True)

        try:
            result = recompute_lot_cost(
                purchase_order_id=order_id,
                new_duty_cost=s.validated_data["duty_cost"],
            )
        except CostCorrectionError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(result, status=status.HTTP_200_OK)


class PurchaseOrderRepairView(GenericAPIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["purchases"], request=None)
    def post(self, request, order_id):
        try:
            result = repair_purchase_inventory(purchase_order_id=order_id)
        except PurchaseArrivalError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(result, status=status.HTTP_200_OK)
