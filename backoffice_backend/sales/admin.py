# sales/admin.py

from django.contrib import admin

from sales.models import Customer, LotConsumption, Sale, SaleLineItem


# ======================================================
# SALE ADMIN (READ-ONLY)
# ======================================================
# Sales are written by the sale saga; the admin only inspects them.


class SaleLineItemInline(admin.TabularInline):
    model = SaleLineItem
    extra = 0
    can_delete = False
    readonly_fields = (
        "variant",
        "product_label_snapshot",
        "variant_label_snapshot",
        "size_snapshot",
        "quantity",
        "unit_price",
        "cost_amount",
        "quantity_unfulfilled",
    )

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "sale_date",
        "customer",
        "gross_after_discount",
        "product_cost",
        "net_profit",
        "margin_percent",
        "cogs_pending",
        "is_preorder",
    )
    list_filter = ("cogs_pending", "is_preorder", "payment_method", "sale_date")
    search_fields = ("id", "customer__name", "notes")
    inlines = [SaleLineItemInline]

    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("name", "phone", "created_at")
    search_fields = ("name", "phone")


@admin.register(LotConsumption)
class LotConsumptionAdmin(admin.ModelAdmin):
    list_display = ("sale_item", "lot", "quantity_consumed", "unit_cost_at_consumption", "created_at")
    readonly_fields = ("sale_item", "lot", "quantity_consumed", "unit_cost_at_consumption", "created_at")
    search_fields = ("sale_item__sale__id", "lot__id")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
