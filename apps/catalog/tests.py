# apps/catalog/tests.py
from django.test import TestCase

from .models import Product, ProductVariant


class ProductModelTests(TestCase):
    def test_slug_auto_generated_and_unique(self):
        p1 = Product.objects.create(name="Blue Widget")
        p2 = Product.objects.create(name="Blue Widget")

        self.assertEqual(p1.slug, "blue-widget")
        self.assertEqual(p2.slug, "blue-widget-1")

    def test_explicit_slug_kept(self):
        p = Product.objects.create(name="Gadget", slug="gadget-special")
        self.assertEqual(p.slug, "gadget-special")

    def test_variant_defaults(self):
        variant = ProductVariant.objects.create(product=Product.objects.create(name="Gadget"), sku="G-1")
        self.assertTrue(variant.track_stock)
        self.assertIsNone(variant.cost_price)
        self.assertEqual(str(variant), "G-1 (Gadget)")
