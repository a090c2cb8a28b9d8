# accounting/admin.py

from django.contrib import admin

from accounting.models import FixedCostPool, PaymentFee, SaleFixedCost

# ============================================================
# FIXED COST POOLS
# ============================================================


@admin.register(FixedCostPool)
class FixedCostPoolAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "total_cost",
        "total_units",
        "remaining_units",
        "unit_cost",
        "is_active",
        "created_at",
    )
    list_filter = ("is_active",)
    search_fields = ("name",)
    ordering = ("name",)
    readonly_fields = ("unit_cost", "created_at")

    fieldsets = (
        (
            "Pool",
            {
                "fields": ("name", "total_cost", "total_units", "remaining_units", "unit_cost"),
            },
        ),
        (
            "Status",
            {
                "fields": ("is_active",),
            },
        ),
        (
            "System Fields",
            {
                "fields": ("created_at",),
            },
        ),
    )


# ============================================================
# FIXED COST USAGE (READ-ONLY)
# ============================================================


@admin.register(SaleFixedCost)
class SaleFixedCostAdmin(admin.ModelAdmin):
    list_display = ("pool", "sale", "unit_cost_applied", "created_at")
    list_filter = ("pool",)
    ordering = ("-created_at",)
    readonly_fields = ("pool", "sale", "unit_cost_applied", "created_at")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# ============================================================
# PAYMENT FEES
# ============================================================


@admin.register(PaymentFee)
class PaymentFeeAdmin(admin.ModelAdmin):
    list_display = ("payment_method", "installments", "fee_percent", "fee_fixed")
    list_filter = ("payment_method",)
    ordering = ("payment_method", "installments")
