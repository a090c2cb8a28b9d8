# purchases/admin.py

from django.contrib import admin

from purchases.models import PurchaseOrder, PurchaseOrderItem, Supplier


@admin.register(Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ("name", "phone", "is_active", "created_at")
    list_filter = ("is_active",)
    search_fields = ("name", "phone")


class PurchaseOrderItemInline(admin.TabularInline):
    model = PurchaseOrderItem
    extra = 0
    fields = ("variant", "description", "quantity", "unit_cost", "currency", "exchange_rate")


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(admin.ModelAdmin):
    """
    Status changes and duty cost go through the API services
    (arrival posts lots; duty cost reprices them).
    """

    list_display = (
        "reference",
        "supplier",
        "order_date",
        "status",
        "source",
        "shipping_mode",
        "duty_cost",
        "stock_posted_at",
    )
    list_filter = ("status", "source", "shipping_mode", "order_date")
    search_fields = ("reference", "supplier__name")
    readonly_fields = ("status", "duty_cost", "arrived_at", "stock_posted_at", "created_at")
    inlines = [PurchaseOrderItemInline]
