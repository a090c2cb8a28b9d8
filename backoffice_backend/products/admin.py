# products/admin.py
"""
=====================================================
PATH: products/admin.py
=====================================================

Admin rules (audit-safe inventory):

- Products and variants are editable catalog data.
- InventoryLot rows are created only by purchase arrival and mutated only by
  the lot ledger; the admin lists them read-only.
- StockLedgerEntry rows are append-only; manual corrections go through the
  stock adjustment endpoint, never through the admin.
"""

from __future__ import annotations

from django.contrib import admin

from products.models import InventoryLot, Product, ProductVariant, StockLedgerEntry


class _ReadOnlyAdmin(admin.ModelAdmin):
    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False if obj else True

    def has_delete_permission(self, request, obj=None):
        return False


# =====================================================
# PRODUCT + VARIANTS
# =====================================================

class ProductVariantInline(admin.TabularInline):
    model = ProductVariant
    extra = 1
    fields = ("sku", "label", "size", "unit_price", "is_active")


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("sku", "name", "category", "is_active", "created_at")
    list_filter = ("is_active", "category", "created_at")
    search_fields = ("sku", "name")
    ordering = ("-created_at",)
    readonly_fields = ("created_at", "updated_at")
    inlines = [ProductVariantInline]


@admin.register(ProductVariant)
class ProductVariantAdmin(admin.ModelAdmin):
    list_display = ("sku", "product", "label", "size", "unit_price", "is_active")
    list_filter = ("is_active",)
    search_fields = ("sku", "label", "product__name", "product__sku")


# =====================================================
# LOTS + LEDGER (VIEW-ONLY)
# =====================================================

@admin.register(InventoryLot)
class InventoryLotAdmin(_ReadOnlyAdmin):
    list_display = (
        "variant",
        "purchase_order",
        "quantity_received",
        "quantity_remaining",
        "unit_cost",
        "cost_pending_tax",
        "received_at",
    )
    list_filter = ("cost_pending_tax", "received_at")
    search_fields = ("variant__sku", "variant__product__name", "purchase_order__reference")
    ordering = ("received_at", "created_at")


@admin.register(StockLedgerEntry)
class StockLedgerEntryAdmin(_ReadOnlyAdmin):
    list_display = ("variant", "entry_type", "quantity", "reference_type", "reference_id", "created_at")
    list_filter = ("entry_type", "reference_type", "created_at")
    search_fields = ("variant__sku", "reference_id", "note")
