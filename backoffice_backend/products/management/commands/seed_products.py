from datetime import timedelta
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from products.models import Product, ProductVariant
from purchases.models import PurchaseOrder, PurchaseOrderItem, Supplier
from purchases.services.arrival_service import transition_purchase_order


class Command(BaseCommand):
    help = "Seed products, variants and two arrived purchase orders (FIFO lots)"

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write(self.style.WARNING("Seeding products and stock..."))

        # -------------------------------
        # PRODUCTS + VARIANTS
        # -------------------------------
        products_data = [
            ("TEE-BASIC", "Basic Tee", "Apparel", [("Black", "M", 79), ("Black", "G", 79), ("White", "M", 75)]),
            ("CAP-LOGO", "Logo Cap", "Accessories", [("Navy", "", 59)]),
            ("HOOD-ZIP", "Zip Hoodie", "Apparel", [("Grey", "M", 189), ("Grey", "G", 189)]),
        ]

        variants = []
        for sku, name, category, variant_rows in products_data:
            product, _ = Product.objects.get_or_create(
                sku=sku,
                defaults={"name": name, "category": category},
            )
            for label, size, price in variant_rows:
                variant_sku = "-".join(p for p in (sku, label.upper(), size) if p)
                variant, _ = ProductVariant.objects.get_or_create(
                    sku=variant_sku,
                    defaults={
                        "product": product,
                        "label": label,
                        "size": size,
                        "unit_price": Decimal(price),
                    },
                )
                variants.append(variant)

        # -------------------------------
        # PURCHASE ORDERS (arrived -> lots)
        # -------------------------------
        supplier, _ = Supplier.objects.get_or_create(name="Seed Supplier")

        orders = [
            ("SEED-PO-1", 30, Decimal("0.00"), Decimal("0.00"), 20, Decimal("22.50")),
            ("SEED-PO-2", 10, Decimal("40.00"), Decimal("15.00"), 10, Decimal("24.00")),
        ]

        for reference, days_ago, freight, extra_fees, qty, unit_cost in orders:
            if PurchaseOrder.objects.filter(reference=reference).exists():
                continue

            order = PurchaseOrder.objects.create(
                supplier=supplier,
                reference=reference,
                order_date=timezone.localdate() - timedelta(days=days_ago),
                freight=freight,
                extra_fees=extra_fees,
            )
            for variant in variants:
                PurchaseOrderItem.objects.create(
                    purchase_order=order,
                    variant=variant,
                    quantity=qty,
                    unit_cost=unit_cost,
                )

            transition_purchase_order(
                purchase_order_id=order.id,
                new_status=PurchaseOrder.STATUS_ARRIVED,
            )

        self.stdout.write(
            self.style.SUCCESS("✅ Products, variants and lots seeded successfully.")
        )
