# products/tests/test_catalog_api.py

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework.test import APIClient

from products.models import Product
from products.services.lot_ledger import lot_ledger
from products.tests.test_lot_ledger import make_variant


class CatalogApiTests(TestCase):
    """
    GUARANTEES:
    - SKUs are normalized to upper case
    - variants expose lot stock and ledger balance read-only
    - a product with variants cannot be deleted (409)
    """

    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(user=get_user_model().objects.create_user(username="cat", password="pass"))

    def test_create_product_and_variant(self):
        res = self.client.post("/api/products/products/", {"sku": " tee ", "name": "Tee"}, format="json")
        self.assertEqual(res.status_code, 201, res.data)
        self.assertEqual(res.data["sku"], "TEE")

        res = self.client.post(
            "/api/products/variants/",
            {"product": res.data["id"], "sku": "tee-red-s", "label": "Red", "size": "S", "unit_price": "49.90"},
            format="json",
        )
        self.assertEqual(res.status_code, 201, res.data)
        self.assertEqual(res.data["sku"], "TEE-RED-S")
        self.assertEqual(res.data["lot_quantity_remaining"], 0)

    def test_variant_shows_lot_stock(self):
        variant = make_variant(sku="CAT-1")
        lot_ledger.insert_lot(variant=variant, quantity=4, unit_cost="9.00")

        res = self.client.get(f"/api/products/variants/{variant.id}/")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["lot_quantity_remaining"], 4)
        self.assertEqual(res.data["ledger_balance"], 0)

    def test_product_with_variants_cannot_be_deleted(self):
        variant = make_variant(sku="CAT-2")

        res = self.client.delete(f"/api/products/products/{variant.product_id}/")

        self.assertEqual(res.status_code, 409)
        self.assertTrue(Product.objects.filter(pk=variant.product_id).exists())
