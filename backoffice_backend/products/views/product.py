# products/views/product.py

"""
CATALOG VIEWSETS

Purpose:
- Product + variant CRUD (authenticated back-office users)
- Deleting a variant that has lots, ledger entries or sale lines is refused
  (PROTECT); deactivate it instead
"""

from django.db.models import ProtectedError, Q
from drf_spectacular.utils import extend_schema, extend_schema_view
from rest_framework import status, viewsets
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from products.models import Product, ProductVariant
from products.serializers import ProductSerializer, ProductVariantSerializer


@extend_schema_view(
    list=extend_schema(tags=["products"]),
    retrieve=extend_schema(tags=["products"]),
    create=extend_schema(tags=["products"]),
    update=extend_schema(tags=["products"]),
    partial_update=extend_schema(tags=["products"]),
    destroy=extend_schema(tags=["products"]),
)
class ProductViewSet(viewsets.ModelViewSet):
    serializer_class = ProductSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ["is_active", "category"]

    def get_queryset(self):
        qs = Product.objects.prefetch_related("variants").order_by("name")

        q = (self.request.query_params.get("q") or "").strip()
        if q:
            qs = qs.filter(Q(name__icontains=q) | Q(sku__icontains=q))

        return qs

    def destroy(self, request, *args, **kwargs):
        try:
            return super().destroy(request, *args, **kwargs)
        except ProtectedError:
            return Response(
                {"detail": "Product has variants; deactivate it instead."},
                status=status.HTTP_409_CONFLICT,
            )


@extend_schema_view(
    list=extend_schema(tags=["products"]),
    retrieve=extend_schema(tags=["products"]),
    create=extend_schema(tags=["products"]),
    update=extend_schema(tags=["products"]),
    partial_update=extend_schema(tags=["products"]),
    destroy=extend_schema(tags=["products"]),
)
class ProductVariantViewSet(viewsets.ModelViewSet):
    serializer_class = ProductVariantSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ["product", "is_active", "size"]

    def get_queryset(self):
        return ProductVariant.objects.select_related("product").order_by(
            "product__name", "label", "size"
        )

    def destroy(self, request, *args, **kwargs):
        try:
            return super().destroy(request, *args, **kwargs)
        except ProtectedError:
            return Response(
                {"detail": "Variant has stock history; deactivate it instead."},
                status=status.HTTP_409_CONFLICT,
            )
