# sales/api/serializers.py

from decimal import Decimal

from rest_framework import serializers

from sales.models import Customer, LotConsumption, Sale, SaleLineItem
from sales.services.sale_input import SaleInput


class CustomerSerializer(serializers.ModelSerializer):
    class Meta:
        model = Customer
        fields = ["id", "name", "phone", "notes", "created_at"]
        read_only_fields = ["id", "created_at"]

    def validate_name(self, value):
        value = (value or "").strip()
        if not value:
            raise serializers.ValidationError("name is required")
        return value


class LotConsumptionSerializer(serializers.ModelSerializer):
    purchase_order_id = serializers.UUIDField(source="lot.purchase_order_id", read_only=True)

    class Meta:
        model = LotConsumption
        fields = [
            "id",
            "lot",
            "purchase_order_id",
            "quantity_consumed",
            "unit_cost_at_consumption",
            "created_at",
        ]
        read_only_fields = fields


class SaleLineItemSerializer(serializers.ModelSerializer):
    """
    Line snapshot (read-only) with the lots it drew from.
    """

    lot_consumptions = LotConsumptionSerializer(many=True, read_only=True)

    class Meta:
        model = SaleLineItem
        fields = [
            "id",
            "variant",
            "product_label_snapshot",
            "variant_label_snapshot",
            "size_snapshot",
            "quantity",
            "unit_price",
            "cost_amount",
            "quantity_unfulfilled",
            "lot_consumptions",
        ]
        read_only_fields = fields


class SaleSerializer(serializers.ModelSerializer):
    customer_name = serializers.CharField(source="customer.name", read_only=True, default=None)
    items = SaleLineItemSerializer(many=True, read_only=True)

    class Meta:
        model = Sale
        fields = [
            "id",
            "customer",
            "customer_name",
            "sale_date",
            "payment_method",
            "installments",
            "channel",
            "notes",
            "gross_amount",
            "discount_percent",
            "discount_amount",
            "gross_after_discount",
            "payment_fee",
            "shipping",
            "fixed_costs_applied",
            "product_cost",
            "net_profit",
            "margin_percent",
            "is_preorder",
            "cogs_pending",
            "created_by",
            "created_at",
            "updated_at",
            "items",
        ]
        read_only_fields = fields


# ==========================================================
# WRITE SIDE
# ==========================================================

class SaleLineInputSerializer(serializers.Serializer):
    variant_id = serializers.UUIDField(required=False, allow_null=True, default=None)
    product_label = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    variant_label = serializers.CharField(max_length=128, required=False, allow_blank=True, default="")
    size = serializers.CharField(max_length=32, required=False, allow_blank=True, default="")
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0.00"))

    def validate(self, attrs):
        if not attrs.get("variant_id") and not (attrs.get("product_label") or "").strip():
            raise serializers.ValidationError("Free-text items need a product_label")
        return attrs


class SaleWriteSerializer(serializers.Serializer):
    """
    Create / update payload. Produces a SaleInput for the saga.
    """

    customer_id = serializers.UUIDField(required=False, allow_null=True, default=None)
    sale_date = serializers.DateField(required=False)
    payment_method = serializers.ChoiceField(choices=Sale.PAYMENT_METHODS, default=Sale.PAYMENT_PIX)
    installments = serializers.IntegerField(min_value=1, default=1)
    discount_percent = serializers.DecimalField(
        max_digits=5,
        decimal_places=2,
        min_value=Decimal("0.00"),
        max_value=Decimal("100.00"),
        default=Decimal("0.00"),
    )
    shipping = serializers.DecimalField(
        max_digits=14, decimal_places=2, min_value=Decimal("0.00"), default=Decimal("0.00")
    )
    payment_fee = serializers.DecimalField(
        max_digits=14,
        decimal_places=2,
        min_value=Decimal("0.00"),
        required=False,
        allow_null=True,
        default=None,
        help_text="Omit to look the fee up in the payment fee table.",
    )
    is_preorder = serializers.BooleanField(default=False)
    fixed_cost_pool_ids = serializers.ListField(
        child=serializers.UUIDField(), required=False, default=list
    )
    channel = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    items = SaleLineInputSerializer(many=True, allow_empty=False)

    def to_sale_input(self) -> SaleInput:
        return SaleInput.from_validated(self.validated_data)


class SagaResultSerializer(serializers.Serializer):
    """
    Schema-only description of the saga result payload.
    """

    outcome = serializers.CharField()
    sale_id = serializers.UUIDField(allow_null=True)
    cogs_pending = serializers.BooleanField()
    error = serializers.CharField(allow_null=True)
    error_type = serializers.CharField(allow_null=True)
    warnings = serializers.ListField(child=serializers.DictField())
