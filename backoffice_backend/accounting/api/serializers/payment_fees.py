# accounting/api/serializers/payment_fees.py

from rest_framework import serializers

from accounting.models import PaymentFee


class PaymentFeeSerializer(serializers.ModelSerializer):
    class Meta:
        model = PaymentFee
        fields = ["id", "payment_method", "installments", "fee_percent", "fee_fixed"]
        read_only_fields = ("id",)

    def validate_payment_method(self, value):
        value = (value or "").strip().lower()
        if not value:
            raise serializers.ValidationError("payment_method is required")
        return value

    def validate_installments(self, value):
        if value < 1:
            raise serializers.ValidationError("installments must be at least 1")
        return value
