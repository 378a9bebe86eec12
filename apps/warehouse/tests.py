# apps/warehouse/tests.py
from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APITestCase

from apps.catalog.models import Product, ProductVariant
from apps.inventory.services import InventoryService
from apps.utils.exceptions import ConflictError, EntityNotFound, MissingWarehouseError
from apps.warehouse.models import Warehouse
from apps.warehouse.services import WarehouseService, resolve_warehouse

User = get_user_model()


class ResolveWarehouseTests(TestCase):
    def test_explicit_id_wins_over_default(self):
        Warehouse.objects.create(name="Main", code="MAIN", is_default=True)
        north = Warehouse.objects.create(name="North", code="NORTH")
        self.assertEqual(resolve_warehouse(north.pk), north)

    def test_falls_back_to_default(self):
        Warehouse.objects.create(name="North", code="NORTH")
        main = Warehouse.objects.create(name="Main", code="MAIN", is_default=True)
        self.assertEqual(resolve_warehouse(), main)

    def test_no_default(self):
        Warehouse.objects.create(name="North", code="NORTH")
        with self.assertRaises(MissingWarehouseError) as ctx:
            resolve_warehouse()
        self.assertEqual(
            ctx.exception.message,
            "No warehouse found. Please create a default warehouse or specify a warehouse.",
        )

    def test_unknown_id(self):
        with self.assertRaises(EntityNotFound):
            resolve_warehouse(424242)


class WarehouseServiceTests(TestCase):
    def test_single_default_on_create_and_update(self):
        first = WarehouseService.create_warehouse(name="Main", code="MAIN", is_default=True)
        second = WarehouseService.create_warehouse(name="North", code="NORTH", is_default=True)

        first.refresh_from_db()
        self.assertFalse(first.is_default)
        self.assertTrue(second.is_default)

        WarehouseService.update_warehouse(first, is_default=True)
        second.refresh_from_db()
        self.assertFalse(second.is_default)
        self.assertEqual(Warehouse.objects.filter(is_default=True).count(), 1)

    def test_delete_blocked_by_inventory(self):
        wh = WarehouseService.create_warehouse(name="Main", code="MAIN")
        variant = ProductVariant.objects.create(product=Product.objects.create(name="Widget"), sku="W-1")
        InventoryService.get_or_create_level(variant.pk, wh.pk)

        with self.assertRaises(ConflictError):
            WarehouseService.delete_warehouse(wh)
        self.assertTrue(Warehouse.objects.filter(pk=wh.pk).exists())

    def test_delete_empty_warehouse(self):
        wh = WarehouseService.create_warehouse(name="Main", code="MAIN")
        WarehouseService.delete_warehouse(wh)
        self.assertFalse(Warehouse.objects.exists())


class WarehouseAPITests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(username="admin", password="testpass", is_staff=True)
        self.client.force_authenticate(self.admin)
        Warehouse.objects.create(name="Alpha Depot", code="ALP", is_default=True)
        Warehouse.objects.create(name="Beta Depot", code="BET")
        Warehouse.objects.create(name="Gamma Store", code="GAM")

    def test_list_search_filter_sort_and_size(self):
        res = self.client.get("/api/v1/warehouses/", {"q": "depot"})
        self.assertEqual(res.data["count"], 2)

        res = self.client.get("/api/v1/warehouses/", {"is_default": "true"})
        self.assertEqual([w["code"] for w in res.data["results"]], ["ALP"])

        res = self.client.get("/api/v1/warehouses/", {"sort": "-code"})
        self.assertEqual([w["code"] for w in res.data["results"]], ["GAM", "BET", "ALP"])

        res = self.client.get("/api/v1/warehouses/", {"size": 1})
        self.assertEqual(len(res.data["results"]), 1)
        self.assertEqual(res.data["count"], 3)

    def test_create_default_moves_flag(self):
        res = self.client.post("/api/v1/warehouses/", {
            "name": "Delta", "code": "DEL", "country_code": "de", "is_default": True,
        }, format="json")

        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        self.assertEqual(res.data["country_code"], "DE")
        self.assertEqual(Warehouse.objects.get(is_default=True).code, "DEL")

    def test_delete_with_inventory_conflict(self):
        wh = Warehouse.objects.get(code="BET")
        variant = ProductVariant.objects.create(product=Product.objects.create(name="Widget"), sku="W-1")
        InventoryService.get_or_create_level(variant.pk, wh.pk)

        res = self.client.delete(f"/api/v1/warehouses/{wh.pk}/")
        self.assertEqual(res.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(res.data["code"], "conflict")

        res = self.client.delete(f"/api/v1/warehouses/{Warehouse.objects.get(code='GAM').pk}/")
        self.assertEqual(res.status_code, status.HTTP_200_OK)

    def test_requires_admin(self):
        self.client.force_authenticate(User.objects.create_user(username="clerk", password="x"))
        res = self.client.get("/api/v1/warehouses/")
        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)
