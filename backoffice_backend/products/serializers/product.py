# products/serializers/product.py

"""
PRODUCT + VARIANT SERIALIZERS

Purpose:
- Catalog CRUD for products and their stock-keeping variants.
- Stock figures are read-only and derived:
  - lot_quantity_remaining: Σ InventoryLot.quantity_remaining (cost-bearing stock)
  - ledger_balance: StockLedgerEntry in - out ± adjustments (display stock)
"""

from rest_framework import serializers

from products.models import Product, ProductVariant
from products.services.stock_ledger import variant_balance


class ProductVariantSerializer(serializers.ModelSerializer):
    """
    GUARANTEES:
    - Stock is never writable here (lots move only through the ledger services)
    - SKU is normalized to upper case
    """

    product_name = serializers.CharField(source="product.name", read_only=True)
    display_name = serializers.CharField(read_only=True)
    lot_quantity_remaining = serializers.IntegerField(read_only=True)
    ledger_balance = serializers.SerializerMethodField(read_only=True)

    class Meta:
        model = ProductVariant
        fields = [
            "id",
            "product",
            "product_name",
            "sku",
            "label",
            "size",
            "display_name",
            "unit_price",
            "lot_quantity_remaining",
            "ledger_balance",
            "is_active",
            "created_at",
        ]
        read_only_fields = ["id", "product_name", "display_name", "created_at"]

    def validate_sku(self, value):
        value = (value or "").strip().upper()
        if not value:
            raise serializers.ValidationError("SKU is required")
        return value

    def validate_unit_price(self, value):
        if value is None or value < 0:
            raise serializers.ValidationError("Unit price must be non-negative")
        return value

    def get_ledger_balance(self, obj) -> int:
        return variant_balance(variant=obj)


class ProductSerializer(serializers.ModelSerializer):
    variants = ProductVariantSerializer(many=True, read_only=True)

    class Meta:
        model = Product
        fields = [
            "id",
            "sku",
            "name",
            "category",
            "is_active",
            "variants",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "variants", "created_at", "updated_at"]

    def validate_sku(self, value):
        value = (value or "").strip().upper()
        if not value:
            raise serializers.ValidationError("SKU is required")
        return value

    def validate_name(self, value):
        value = (value or "").strip()
        if not value:
            raise serializers.ValidationError("Name is required")
        return value
