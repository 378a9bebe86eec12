from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APITestCase

from apps.catalog.models import Product, ProductVariant
from apps.inventory.models import AdjustmentMode, InventoryItem, InventoryMovement, MovementType
from apps.inventory.services import InventoryService
from apps.utils.exceptions import InsufficientStockError, InvalidTransitionError, UnprocessableError
from apps.warehouse.models import Warehouse
from .models import Fulfillment, Order, OrderItem
from .services import FulfillmentService

User = get_user_model()


class FulfillmentFixtureMixin:
    def setUp(self):
        super().setUp()
        self.wh = Warehouse.objects.create(name="Main", code="MAIN", is_default=True)
        product = Product.objects.create(name="Widget")
        self.variant = ProductVariant.objects.create(product=product, sku="W-1", price="12.50")
        InventoryService.adjust_stock(self.variant.pk, self.wh.pk, AdjustmentMode.SET_ON_HAND, 10)

        self.order = Order.objects.create(order_number="ORD-2001")
        self.order_item = OrderItem.objects.create(
            order=self.order, variant=self.variant, product_name="Widget",
            variant_sku="W-1", unit_price="12.50", qty=5,
        )

    def on_hand(self):
        return InventoryItem.objects.get(variant=self.variant, warehouse=self.wh).on_hand


class FulfillmentServiceTests(FulfillmentFixtureMixin, TestCase):
    def test_create_deducts_stock(self):
        f = FulfillmentService.create_fulfillment(
            self.order, [{"order_item_id": self.order_item.pk, "qty": 3}], carrier="DHL"
        )

        self.assertEqual(f.status, Fulfillment.Status.PENDING)
        self.assertEqual(f.carrier, "DHL")
        self.assertEqual(self.on_hand(), 7)

        sale = InventoryMovement.objects.get(movement_type=MovementType.SALE)
        self.assertEqual((sale.reference_type, sale.reference_id), ("fulfillment", str(f.pk)))
        self.assertEqual(sale.note, f"Fulfillment #{f.pk} - Order #ORD-2001")

    def test_remaining_quantity_enforced(self):
        FulfillmentService.create_fulfillment(self.order, [{"order_item_id": self.order_item.pk, "qty": 4}])

        with self.assertRaises(UnprocessableError) as ctx:
            FulfillmentService.create_fulfillment(self.order, [{"order_item_id": self.order_item.pk, "qty": 2}])

        self.assertEqual(
            ctx.exception.message,
            f"Quantity for order item ID {self.order_item.pk} exceeds remaining quantity. Remaining: 1, Requested: 2",
        )
        self.assertEqual(self.order_item.remaining_qty, 1)

    def test_foreign_order_item_rejected(self):
        other = Order.objects.create(order_number="ORD-9")
        stranger = OrderItem.objects.create(
            order=other, variant=self.variant, product_name="Widget", variant_sku="W-1", unit_price="1", qty=1
        )
        with self.assertRaises(UnprocessableError):
            FulfillmentService.create_fulfillment(self.order, [{"order_item_id": stranger.pk, "qty": 1}])

    def test_insufficient_stock_rolls_back_fulfillment(self):
        InventoryService.adjust_stock(self.variant.pk, self.wh.pk, AdjustmentMode.SET_ON_HAND, 2)

        with self.assertRaises(InsufficientStockError):
            FulfillmentService.create_fulfillment(self.order, [{"order_item_id": self.order_item.pk, "qty": 3}])

        self.assertFalse(Fulfillment.objects.exists())
        self.assertEqual(self.on_hand(), 2)

    def test_returned_restores_stock_once(self):
        f = FulfillmentService.create_fulfillment(self.order, [{"order_item_id": self.order_item.pk, "qty": 3}])

        f = FulfillmentService.update_status(f, Fulfillment.Status.SHIPPED)
        self.assertIsNotNone(f.shipped_at)
        f = FulfillmentService.update_status(f, Fulfillment.Status.RETURNED)
        self.assertEqual(self.on_hand(), 10)

        # Same status again is a no-op
        FulfillmentService.update_status(f, Fulfillment.Status.RETURNED)
        self.assertEqual(self.on_hand(), 10)
        self.assertEqual(InventoryMovement.objects.filter(movement_type=MovementType.RETURN_IN).count(), 1)

        with self.assertRaises(InvalidTransitionError):
            FulfillmentService.update_status(f, Fulfillment.Status.SHIPPED)

    def test_delivered_timestamp(self):
        f = FulfillmentService.create_fulfillment(self.order, [{"order_item_id": self.order_item.pk, "qty": 1}])
        f = FulfillmentService.update_status(f, Fulfillment.Status.DELIVERED)
        self.assertIsNotNone(f.delivered_at)
        self.assertIsNone(f.shipped_at)


class FulfillmentAPITests(FulfillmentFixtureMixin, APITestCase):
    def setUp(self):
        super().setUp()
        self.staff = User.objects.create_user(username="packer", password="testpass", is_staff=True)
        self.client.force_authenticate(self.staff)

    def test_create_and_return(self):
        res = self.client.post(f"/api/v1/orders/{self.order.pk}/fulfillments/", {
            "items": [{"order_item_id": self.order_item.pk, "qty": 2}],
            "tracking_number": "TRK-1",
        }, format="json")

        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        fid = res.data["data"]["id"]
        self.assertEqual(res.data["data"]["items"][0]["qty"], 2)
        self.assertEqual(self.on_hand(), 8)
        self.assertEqual(InventoryMovement.objects.get(movement_type=MovementType.SALE).performed_by, self.staff)

        res = self.client.patch(f"/api/v1/fulfillments/{fid}/", {"carrier": "UPS"}, format="json")
        self.assertEqual(res.data["data"]["carrier"], "UPS")
        self.assertEqual(res.data["data"]["tracking_number"], "TRK-1")

        res = self.client.post(f"/api/v1/fulfillments/{fid}/status/", {"status": "returned"}, format="json")
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["data"]["status"], "returned")
        self.assertEqual(self.on_hand(), 10)

        res = self.client.get(f"/api/v1/fulfillments/{fid}/")
        self.assertEqual(res.data["order_number"], "ORD-2001")

    def test_insufficient_stock_returns_422(self):
        res = self.client.post(f"/api/v1/orders/{self.order.pk}/fulfillments/", {
            "items": [{"order_item_id": self.order_item.pk, "qty": 5}],
            "warehouse_id": Warehouse.objects.create(name="Empty", code="EMPTY").pk,
        }, format="json")

        self.assertEqual(res.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)
        self.assertEqual(res.data["code"], "insufficient_stock")
        self.assertFalse(Fulfillment.objects.exists())

    def test_unknown_order(self):
        res = self.client.post("/api/v1/orders/999999/fulfillments/", {
            "items": [{"order_item_id": self.order_item.pk, "qty": 1}],
        }, format="json")
        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)
