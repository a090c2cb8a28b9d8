# purchases/api/serializers.py

from decimal import Decimal

from rest_framework import serializers

from purchases.models import PurchaseOrder, PurchaseOrderItem, Supplier


class SupplierSerializer(serializers.ModelSerializer):
    class Meta:
        model = Supplier
        fields = "__all__"
        read_only_fields = ("id", "created_at")


class PurchaseOrderItemCreateSerializer(serializers.Serializer):
    variant_id = serializers.UUIDField(required=False, allow_null=True)
    description = serializers.CharField(required=False, allow_blank=True, max_length=255)
    quantity = serializers.IntegerField(min_value=1)
    unit_cost = serializers.DecimalField(max_digits=14, decimal_places=4, min_value=Decimal("0"))
    currency = serializers.CharField(required=False, max_length=3, default="BRL")
    exchange_rate = serializers.DecimalField(
        max_digits=14,
        decimal_places=6,
        required=False,
        default=Decimal("1"),
        min_value=Decimal("0.000001"),
    )


class PurchaseOrderCreateSerializer(serializers.Serializer):
    supplier_id = serializers.UUIDField(required=False, allow_null=True)
    reference = serializers.CharField(required=False, allow_blank=True, max_length=64)
    order_date = serializers.DateField(required=False)
    source = serializers.ChoiceField(
        choices=[s for s, _ in PurchaseOrder.SOURCES],
        default=PurchaseOrder.SOURCE_DOMESTIC,
    )
    shipping_mode = serializers.ChoiceField(
        choices=[m for m, _ in PurchaseOrder.SHIPPING_MODES],
        required=False,
        allow_null=True,
    )
    freight = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, default=Decimal("0"), min_value=Decimal("0"))
    extra_fees = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, default=Decimal("0"), min_value=Decimal("0"))
    duty_cost = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, allow_null=True, min_value=Decimal("0"))
    notes = serializers.CharField(required=False, allow_blank=True)
    items = PurchaseOrderItemCreateSerializer(many=True)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError("A purchase order needs at least one item")
        return value


class PurchaseOrderItemSerializer(serializers.ModelSerializer):
    variant_sku = serializers.CharField(source="variant.sku", read_only=True, default=None)
    lot_id = serializers.SerializerMethodField()

    class Meta:
        model = PurchaseOrderItem
        fields = [
            "id",
            "variant",
            "variant_sku",
            "description",
            "quantity",
            "unit_cost",
            "currency",
            "exchange_rate",
            "lot_id",
        ]

    def get_lot_id(self, obj):
        lot = getattr(obj, "inventory_lot", None)
        return str(lot.id) if lot else None


class PurchaseOrderSerializer(serializers.ModelSerializer):
    supplier_name = serializers.CharField(source="supplier.name", read_only=True, default=None)
    items = PurchaseOrderItemSerializer(many=True, read_only=True)
    has_deferred_duty = serializers.BooleanField(read_only=True)
    total_units = serializers.IntegerField(read_only=True)

    class Meta:
        model = PurchaseOrder
        fields = [
            "id",
            "supplier",
            "supplier_name",
            "reference",
            "order_date",
            "status",
            "source",
            "shipping_mode",
            "freight",
            "extra_fees",
            "duty_cost",
            "has_deferred_duty",
            "total_units",
            "notes",
            "arrived_at",
            "stock_posted_at",
            "created_at",
            "items",
        ]
        read_only_fields = fields


class PurchaseOrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[s for s, _ in PurchaseOrder.STATUSES])


class DutyCostSerializer(serializers.Serializer):
    duty_cost = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal("0"))
