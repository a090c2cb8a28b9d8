# accounting/api/serializers/fixed_costs.py

from decimal import Decimal

from rest_framework import serializers

from accounting.models import FixedCostPool, SaleFixedCost


class FixedCostPoolSerializer(serializers.ModelSerializer):
    """
    unit_cost is derived (total_cost / total_units); remaining_units
    defaults to total_units on create.
    """

    remaining_units = serializers.IntegerField(min_value=0, required=False)
    is_available = serializers.BooleanField(read_only=True)

    class Meta:
        model = FixedCostPool
        fields = [
            "id",
            "name",
            "total_cost",
            "total_units",
            "remaining_units",
            "unit_cost",
            "is_active",
            "is_available",
            "created_at",
        ]
        read_only_fields = ("id", "unit_cost", "is_available", "created_at")

    def validate_total_cost(self, value):
        if value < Decimal("0.00"):
            raise serializers.ValidationError("total_cost cannot be negative")
        return value

    def validate_total_units(self, value):
        if value <= 0:
            raise serializers.ValidationError("total_units must be greater than zero")
        return value

    def validate(self, attrs):
        total = attrs.get("total_units", getattr(self.instance, "total_units", None))
        remaining = attrs.get("remaining_units", getattr(self.instance, "remaining_units", None))
        if remaining is not None and total is not None and remaining > total:
            raise serializers.ValidationError(
                {"remaining_units": "remaining_units cannot exceed total_units"}
            )
        return attrs


class SaleFixedCostSerializer(serializers.ModelSerializer):
    pool_name = serializers.CharField(source="pool.name", read_only=True)

    class Meta:
        model = SaleFixedCost
        fields = ["id", "sale", "pool", "pool_name", "unit_cost_applied", "created_at"]
        read_only_fields = fields
