# products/serializers/inventory.py

from rest_framework import serializers

from products.models import InventoryLot, StockLedgerEntry


class InventoryLotSerializer(serializers.ModelSerializer):
    """
    Read-only lot view. Lots are written by arrival, the sale saga and
    cost correction; never through the API.
    """

    variant_sku = serializers.CharField(source="variant.sku", read_only=True)
    quantity_consumed = serializers.IntegerField(read_only=True)

    class Meta:
        model = InventoryLot
        fields = [
            "id",
            "variant",
            "variant_sku",
            "purchase_order",
            "purchase_item",
            "quantity_received",
            "quantity_remaining",
            "quantity_consumed",
            "unit_cost",
            "received_at",
            "cost_pending_tax",
            "created_at",
        ]
        read_only_fields = fields


class StockLedgerEntrySerializer(serializers.ModelSerializer):
    signed_quantity = serializers.IntegerField(read_only=True)

    class Meta:
        model = StockLedgerEntry
        fields = [
            "id",
            "variant",
            "entry_type",
            "quantity",
            "signed_quantity",
            "reference_type",
            "reference_id",
            "note",
            "created_at",
        ]
        read_only_fields = fields


class StockAdjustmentSerializer(serializers.Serializer):
    variant_id = serializers.UUIDField()
    quantity = serializers.IntegerField()
    note = serializers.CharField(required=False, allow_blank=True, max_length=255)

    def validate_quantity(self, value):
        if value == 0:
            raise serializers.ValidationError("Adjustment quantity cannot be zero")
        return value
