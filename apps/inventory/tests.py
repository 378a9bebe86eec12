# apps/inventory/tests.py
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APITestCase

from apps.catalog.models import Product, ProductVariant
from apps.orders.models import Order, OrderItem, Fulfillment, FulfillmentItem
from apps.utils.exceptions import (
    BusinessLogicException,
    EntityNotFound,
    ImmutableRecordError,
    InsufficientReservedError,
    InsufficientStockError,
    InvalidTransitionError,
    MissingWarehouseError,
    UnprocessableError,
)
from apps.warehouse.models import Warehouse
from .models import (
    AdjustmentMode,
    InventoryAdjustment,
    InventoryItem,
    InventoryMovement,
    MovementType,
    Transfer,
    TransferStatus,
)
from .services import InventoryService, TransferService
from .tasks import run_ledger_reconciliation

User = get_user_model()


def make_variant(sku, name="Widget"):
    product = Product.objects.create(name=name)
    return ProductVariant.objects.create(product=product, sku=sku, price="10.00")


def stock(variant, warehouse, qty):
    """Seed on_hand through the ledger so reconciliation stays clean."""
    InventoryService.adjust_stock(variant.pk, warehouse.pk, AdjustmentMode.DELTA_ON_HAND, qty)


def level(variant, warehouse):
    return InventoryItem.objects.get(variant=variant, warehouse=warehouse)


def make_fulfillment(lines, order_number="ORD-1001"):
    order = Order.objects.create(order_number=order_number)
    fulfillment = Fulfillment.objects.create(order=order)
    for variant, qty in lines:
        order_item = OrderItem.objects.create(
            order=order, variant=variant, product_name=variant.product.name,
            variant_sku=variant.sku, unit_price="10.00", qty=qty,
        )
        FulfillmentItem.objects.create(fulfillment=fulfillment, order_item=order_item, qty=qty)
    return fulfillment


class StockLevelTests(TestCase):
    def setUp(self):
        self.wh = Warehouse.objects.create(name="Main", code="MAIN", is_default=True)
        self.variant = make_variant("SKU-1")

    def test_available_never_negative(self):
        item = InventoryItem(variant=self.variant, warehouse=self.wh, on_hand=5, reserved=8)
        self.assertEqual(item.available, 0)

        item.on_hand, item.reserved = 10, 3
        self.assertEqual(item.available, 7)

        item.on_hand, item.reserved = -4, 0
        self.assertEqual(item.available, 0)

    def test_threshold_flags(self):
        item = InventoryItem(variant=self.variant, warehouse=self.wh, on_hand=5, safety_stock=6, reorder_point=5)
        self.assertTrue(item.is_below_safety_stock)
        self.assertTrue(item.needs_reorder)

        item.on_hand = 6
        self.assertFalse(item.is_below_safety_stock)
        self.assertFalse(item.needs_reorder)

    def test_get_or_create_level_is_idempotent(self):
        first = InventoryService.get_or_create_level(self.variant.pk, self.wh.pk)
        second = InventoryService.get_or_create_level(self.variant.pk, self.wh.pk)

        self.assertEqual(first.pk, second.pk)
        self.assertEqual((second.on_hand, second.reserved), (0, 0))
        self.assertEqual(InventoryItem.objects.count(), 1)

    def test_get_or_create_level_unknown_variant(self):
        with self.assertRaises(EntityNotFound):
            InventoryService.get_or_create_level(999999, self.wh.pk)
        self.assertEqual(InventoryItem.objects.count(), 0)


class LedgerImmutabilityTests(TestCase):
    def setUp(self):
        self.wh = Warehouse.objects.create(name="Main", code="MAIN", is_default=True)
        self.variant = make_variant("SKU-1")
        stock(self.variant, self.wh, 3)
        self.movement = InventoryMovement.objects.get()

    def test_existing_row_cannot_be_saved(self):
        self.movement.note = "edited"
        with self.assertRaises(ImmutableRecordError):
            self.movement.save()

    def test_row_cannot_be_deleted(self):
        with self.assertRaises(ImmutableRecordError):
            self.movement.delete()

    def test_bulk_update_and_delete_refused(self):
        with self.assertRaises(ImmutableRecordError):
            InventoryMovement.objects.filter(pk=self.movement.pk).update(qty_change=100)
        with self.assertRaises(ImmutableRecordError):
            InventoryMovement.objects.all().delete()
        with self.assertRaises(ImmutableRecordError):
            InventoryAdjustment.objects.all().delete()


class AdjustmentTests(TestCase):
    def setUp(self):
        self.wh = Warehouse.objects.create(name="Main", code="MAIN", is_default=True)
        self.variant = make_variant("SKU-1")
        stock(self.variant, self.wh, 20)

    def test_set_on_hand(self):
        adj = InventoryService.adjust_stock(
            self.variant.pk, self.wh.pk, AdjustmentMode.SET_ON_HAND, 50, reason_code="COUNT_CORRECTION"
        )

        self.assertEqual((adj.qty_before, adj.qty_change, adj.qty_after), (20, 30, 50))
        self.assertEqual(level(self.variant, self.wh).on_hand, 50)

        movements = InventoryMovement.objects.filter(
            reference_type="inventory_adjustment", reference_id=str(adj.pk)
        )
        self.assertEqual(movements.count(), 1)
        movement = movements.get()
        self.assertEqual(movement.movement_type, MovementType.ADJUSTMENT)
        self.assertEqual(movement.qty_change, 30)
        self.assertEqual(movement.reason_code, "COUNT_CORRECTION")

    def test_delta_on_hand(self):
        adj = InventoryService.adjust_stock(self.variant.pk, self.wh.pk, AdjustmentMode.DELTA_ON_HAND, -5)

        self.assertEqual((adj.qty_before, adj.qty_change, adj.qty_after), (20, -5, 15))
        self.assertEqual(level(self.variant, self.wh).on_hand, 15)
        self.assertEqual(
            InventoryMovement.objects.get(reference_id=str(adj.pk), reference_type="inventory_adjustment").qty_change,
            -5,
        )

    def test_negative_result_allowed_and_logged(self):
        with self.assertLogs("apps.inventory.services", level="WARNING") as logs:
            adj = InventoryService.adjust_stock(self.variant.pk, self.wh.pk, AdjustmentMode.DELTA_ON_HAND, -25)

        self.assertEqual(adj.qty_after, -5)
        self.assertEqual(level(self.variant, self.wh).on_hand, -5)
        self.assertTrue(any("negative" in line for line in logs.output))

    def test_unknown_mode_writes_nothing(self):
        with self.assertRaises(BusinessLogicException):
            InventoryService.adjust_stock(self.variant.pk, self.wh.pk, "MULTIPLY", 2)

        self.assertEqual(level(self.variant, self.wh).on_hand, 20)
        self.assertEqual(InventoryAdjustment.objects.count(), 1)

    def test_first_adjustment_creates_level(self):
        other = make_variant("SKU-2")
        InventoryService.adjust_stock(other.pk, self.wh.pk, AdjustmentMode.SET_ON_HAND, 7)
        self.assertEqual(level(other, self.wh).on_hand, 7)


class ReservationTests(TestCase):
    def setUp(self):
        self.wh = Warehouse.objects.create(name="Main", code="MAIN", is_default=True)
        self.variant = make_variant("SKU-1")
        stock(self.variant, self.wh, 10)

    def test_reserve_and_release(self):
        item = InventoryService.reserve_stock(self.variant.pk, self.wh.pk, 4, reference_type="order", reference_id=7)
        self.assertEqual((item.on_hand, item.reserved, item.available), (10, 4, 6))

        item = InventoryService.release_stock(self.variant.pk, self.wh.pk, 3)
        self.assertEqual((item.on_hand, item.reserved, item.available), (10, 1, 9))

        movements = InventoryMovement.objects.filter(
            movement_type__in=[MovementType.RESERVATION, MovementType.RELEASE]
        )
        self.assertEqual(movements.count(), 2)
        self.assertTrue(all(m.qty_change == 0 for m in movements))
        self.assertEqual(movements.get(movement_type=MovementType.RESERVATION).reference_id, "7")

    def test_reserve_more_than_available(self):
        InventoryService.reserve_stock(self.variant.pk, self.wh.pk, 8)

        with self.assertRaises(InsufficientStockError) as ctx:
            InventoryService.reserve_stock(self.variant.pk, self.wh.pk, 3)

        self.assertEqual(ctx.exception.available, 2)
        self.assertEqual(level(self.variant, self.wh).reserved, 8)

    def test_release_without_level(self):
        other = make_variant("SKU-2")
        with self.assertRaises(EntityNotFound):
            InventoryService.release_stock(other.pk, self.wh.pk, 1)

    def test_release_more_than_reserved(self):
        InventoryService.reserve_stock(self.variant.pk, self.wh.pk, 2)
        with self.assertRaises(InsufficientReservedError):
            InventoryService.release_stock(self.variant.pk, self.wh.pk, 3)
        self.assertEqual(level(self.variant, self.wh).reserved, 2)


class FulfillmentStockTests(TestCase):
    def setUp(self):
        self.wh = Warehouse.objects.create(name="Main", code="MAIN", is_default=True)
        self.variant = make_variant("SKU-1")
        self.other = make_variant("SKU-2", name="Gadget")

    def test_deduct_then_restore_round_trip(self):
        stock(self.variant, self.wh, 10)
        stock(self.other, self.wh, 4)
        f = make_fulfillment([(self.variant, 3), (self.other, 4)])

        InventoryService.deduct_for_fulfillment(f)
        self.assertEqual(level(self.variant, self.wh).on_hand, 7)
        self.assertEqual(level(self.other, self.wh).on_hand, 0)

        InventoryService.restore_for_return(f)
        self.assertEqual(level(self.variant, self.wh).on_hand, 10)
        self.assertEqual(level(self.other, self.wh).on_hand, 4)

        refs = InventoryMovement.objects.filter(reference_type="fulfillment", reference_id=str(f.pk))
        for variant, qty in ((self.variant, 3), (self.other, 4)):
            sale = refs.get(variant=variant, movement_type=MovementType.SALE)
            ret = refs.get(variant=variant, movement_type=MovementType.RETURN_IN)
            self.assertEqual(sale.qty_change, -qty)
            self.assertEqual(ret.qty_change, qty)

        sale_note = refs.filter(movement_type=MovementType.SALE).first().note
        self.assertEqual(sale_note, f"Fulfillment #{f.pk} - Order #ORD-1001")
        return_note = refs.filter(movement_type=MovementType.RETURN_IN).first().note
        self.assertEqual(return_note, f"Returned fulfillment #{f.pk} - Order #ORD-1001")

    def test_insufficient_stock_writes_nothing(self):
        stock(self.variant, self.wh, 5)
        f = make_fulfillment([(self.variant, 6)])

        with self.assertRaises(InsufficientStockError) as ctx:
            InventoryService.deduct_for_fulfillment(f)

        self.assertEqual(
            ctx.exception.message,
            f"Insufficient stock for variant ID {self.variant.pk}. Available: 5, Required: 6",
        )
        self.assertEqual(level(self.variant, self.wh).on_hand, 5)
        self.assertFalse(InventoryMovement.objects.filter(movement_type=MovementType.SALE).exists())

    def test_failure_on_second_line_rolls_back_first(self):
        stock(self.variant, self.wh, 10)
        stock(self.other, self.wh, 1)
        f = make_fulfillment([(self.variant, 2), (self.other, 2)])

        with self.assertRaises(InsufficientStockError):
            InventoryService.deduct_for_fulfillment(f)

        self.assertEqual(level(self.variant, self.wh).on_hand, 10)
        self.assertFalse(InventoryMovement.objects.filter(reference_type="fulfillment").exists())

    def test_reserved_stock_is_not_available(self):
        stock(self.variant, self.wh, 10)
        InventoryService.reserve_stock(self.variant.pk, self.wh.pk, 6)
        f = make_fulfillment([(self.variant, 5)])

        with self.assertRaises(InsufficientStockError):
            InventoryService.deduct_for_fulfillment(f)

    def test_explicit_warehouse(self):
        north = Warehouse.objects.create(name="North", code="NORTH")
        stock(self.variant, north, 3)
        f = make_fulfillment([(self.variant, 3)])

        InventoryService.deduct_for_fulfillment(f, warehouse_id=north.pk)
        self.assertEqual(level(self.variant, north).on_hand, 0)

    def test_no_default_warehouse(self):
        self.wh.is_default = False
        self.wh.save()
        f = make_fulfillment([(self.variant, 1)])

        with self.assertRaises(MissingWarehouseError):
            InventoryService.deduct_for_fulfillment(f)

    def test_restore_goes_to_warehouse_of_sale(self):
        north = Warehouse.objects.create(name="North", code="NORTH")
        stock(self.variant, north, 3)
        f = make_fulfillment([(self.variant, 2)])
        InventoryService.deduct_for_fulfillment(f, warehouse_id=north.pk)

        InventoryService.restore_for_return(f)

        self.assertEqual(level(self.variant, north).on_hand, 3)
        self.assertFalse(InventoryItem.objects.filter(variant=self.variant, warehouse=self.wh).exists())

    def test_restore_without_sale_uses_default(self):
        f = make_fulfillment([(self.variant, 2)])

        InventoryService.restore_for_return(f)

        self.assertEqual(level(self.variant, self.wh).on_hand, 2)

    def test_restore_without_sale_or_default(self):
        self.wh.is_default = False
        self.wh.save()
        f = make_fulfillment([(self.variant, 2)])

        with self.assertRaises(MissingWarehouseError) as ctx:
            InventoryService.restore_for_return(f)
        self.assertEqual(
            ctx.exception.message,
            "No warehouse found. Cannot restore inventory without warehouse information.",
        )


class TransferTests(TestCase):
    def setUp(self):
        self.src = Warehouse.objects.create(name="Source", code="SRC", is_default=True)
        self.dst = Warehouse.objects.create(name="Destination", code="DST")
        self.variant = make_variant("SKU-5")
        stock(self.variant, self.src, 25)

    def draft(self, qty=10):
        return TransferService.create_transfer(
            self.src.pk, self.dst.pk, [{"variant_id": self.variant.pk, "qty": qty}]
        )

    def test_dispatch_and_receive_net_zero(self):
        transfer = self.draft()
        self.assertEqual(transfer.status, TransferStatus.DRAFT)

        transfer = TransferService.dispatch_transfer(transfer.pk)
        self.assertEqual(transfer.status, TransferStatus.IN_TRANSIT)
        self.assertIsNotNone(transfer.dispatched_at)
        self.assertEqual(level(self.variant, self.src).on_hand, 15)

        out = InventoryMovement.objects.get(movement_type=MovementType.TRANSFER_OUT)
        self.assertEqual((out.warehouse_id, out.qty_change), (self.src.pk, -10))
        self.assertEqual((out.reference_type, out.reference_id), ("transfer", str(transfer.pk)))

        transfer = TransferService.receive_transfer(transfer.pk)
        self.assertEqual(transfer.status, TransferStatus.RECEIVED)
        self.assertEqual(level(self.variant, self.dst).on_hand, 10)

        inbound = InventoryMovement.objects.get(movement_type=MovementType.TRANSFER_IN)
        self.assertEqual((inbound.warehouse_id, inbound.qty_change), (self.dst.pk, 10))

        total = level(self.variant, self.src).on_hand + level(self.variant, self.dst).on_hand
        self.assertEqual(total, 25)

    def test_update_and_cancel_refused_in_transit(self):
        transfer = TransferService.dispatch_transfer(self.draft().pk)

        with self.assertRaises(InvalidTransitionError):
            TransferService.update_transfer(transfer.pk, items=[{"variant_id": self.variant.pk, "qty": 1}])
        with self.assertRaises(InvalidTransitionError) as ctx:
            TransferService.cancel_transfer(transfer.pk)

        self.assertEqual(ctx.exception.current, TransferStatus.IN_TRANSIT)
        self.assertEqual(ctx.exception.required, TransferStatus.DRAFT)

    def test_receive_requires_in_transit(self):
        transfer = self.draft()
        with self.assertRaises(InvalidTransitionError):
            TransferService.receive_transfer(transfer.pk)

    def test_cancel_draft_has_no_stock_effect(self):
        transfer = TransferService.cancel_transfer(self.draft().pk)

        self.assertEqual(transfer.status, TransferStatus.CANCELED)
        self.assertIsNotNone(transfer.canceled_at)
        self.assertEqual(level(self.variant, self.src).on_hand, 25)
        with self.assertRaises(InvalidTransitionError):
            TransferService.dispatch_transfer(transfer.pk)

    def test_dispatch_without_items(self):
        transfer = TransferService.create_transfer(self.src.pk, self.dst.pk, [])
        with self.assertRaises(UnprocessableError):
            TransferService.dispatch_transfer(transfer.pk)
        transfer.refresh_from_db()
        self.assertEqual(transfer.status, TransferStatus.DRAFT)

    def test_dispatch_does_not_check_availability(self):
        transfer = TransferService.dispatch_transfer(self.draft(qty=30).pk)
        self.assertEqual(transfer.status, TransferStatus.IN_TRANSIT)
        self.assertEqual(level(self.variant, self.src).on_hand, -5)

    def test_same_warehouse_refused(self):
        with self.assertRaises(UnprocessableError):
            TransferService.create_transfer(self.src.pk, self.src.pk, [])

    def test_update_draft_replaces_items(self):
        other = make_variant("SKU-6")
        transfer = TransferService.update_transfer(
            self.draft().pk, items=[{"variant_id": other.pk, "qty": 2}, {"variant_id": self.variant.pk, "qty": 1}]
        )
        self.assertEqual(
            sorted((i.variant_id, i.qty) for i in transfer.items.all()),
            sorted([(other.pk, 2), (self.variant.pk, 1)]),
        )

    def test_unknown_transfer(self):
        with self.assertRaises(EntityNotFound):
            TransferService.dispatch_transfer(424242)


class InventoryAdminTests(TestCase):
    """Admin screens must not bypass the stock services."""

    def setUp(self):
        self.admin = User.objects.create_superuser(username="root", password="testpass", email="root@example.com")
        self.client.force_login(self.admin)
        self.src = Warehouse.objects.create(name="Source", code="SRC", is_default=True)
        self.dst = Warehouse.objects.create(name="Destination", code="DST")
        self.other = Warehouse.objects.create(name="Other", code="OTH")
        self.variant = make_variant("SKU-9")
        stock(self.variant, self.src, 25)

    def dispatched(self):
        transfer = TransferService.create_transfer(
            self.src.pk, self.dst.pk, [{"variant_id": self.variant.pk, "qty": 10}]
        )
        return TransferService.dispatch_transfer(transfer.pk)

    def test_dispatched_transfer_lines_frozen(self):
        transfer = self.dispatched()
        line = transfer.items.get()

        self.client.post(f"/admin/inventory/transfer/{transfer.pk}/change/", {
            "to_warehouse": self.other.pk,
            "items-TOTAL_FORMS": "1",
            "items-INITIAL_FORMS": "1",
            "items-MIN_NUM_FORMS": "0",
            "items-MAX_NUM_FORMS": "1000",
            "items-0-id": line.pk,
            "items-0-transfer": transfer.pk,
            "items-0-variant": self.variant.pk,
            "items-0-qty": "99",
        })

        line.refresh_from_db()
        transfer.refresh_from_db()
        self.assertEqual(line.qty, 10)
        self.assertEqual(transfer.to_warehouse_id, self.dst.pk)

        TransferService.receive_transfer(transfer.pk)
        total = level(self.variant, self.src).on_hand + level(self.variant, self.dst).on_hand
        self.assertEqual(total, 25)

    def test_only_draft_transfers_deletable(self):
        transfer = self.dispatched()
        res = self.client.post(f"/admin/inventory/transfer/{transfer.pk}/delete/", {"post": "yes"})
        self.assertEqual(res.status_code, 403)
        self.assertTrue(Transfer.objects.filter(pk=transfer.pk).exists())

        draft = TransferService.create_transfer(self.src.pk, self.dst.pk, [])
        res = self.client.get(f"/admin/inventory/transfer/{draft.pk}/delete/")
        self.assertEqual(res.status_code, 200)

    def test_stock_levels_cannot_be_added_or_deleted(self):
        item = level(self.variant, self.src)

        res = self.client.post(f"/admin/inventory/inventoryitem/{item.pk}/delete/", {"post": "yes"})
        self.assertEqual(res.status_code, 403)
        self.assertTrue(InventoryItem.objects.filter(pk=item.pk).exists())

        res = self.client.get("/admin/inventory/inventoryitem/add/")
        self.assertEqual(res.status_code, 403)


class ReconciliationTests(TestCase):
    def setUp(self):
        self.wh = Warehouse.objects.create(name="Main", code="MAIN", is_default=True)
        self.dst = Warehouse.objects.create(name="Second", code="SECOND")
        self.variant = make_variant("SKU-1")
        stock(self.variant, self.wh, 12)

    def test_ledger_matches_after_every_operation(self):
        InventoryService.adjust_stock(self.variant.pk, self.wh.pk, AdjustmentMode.SET_ON_HAND, 30)
        InventoryService.reserve_stock(self.variant.pk, self.wh.pk, 5)
        f = make_fulfillment([(self.variant, 4)])
        InventoryService.deduct_for_fulfillment(f)
        InventoryService.restore_for_return(f)
        t = TransferService.create_transfer(self.wh.pk, self.dst.pk, [{"variant_id": self.variant.pk, "qty": 6}])
        TransferService.dispatch_transfer(t.pk)

        # in transit: both sides still reconcile on their own
        self.assertEqual(InventoryService.find_ledger_mismatches(), [])

        TransferService.receive_transfer(t.pk)
        self.assertEqual(InventoryService.find_ledger_mismatches(), [])

    def test_detects_drift(self):
        InventoryItem.objects.filter(variant=self.variant).update(on_hand=99)

        mismatches = InventoryService.find_ledger_mismatches()

        self.assertEqual(len(mismatches), 1)
        self.assertEqual((mismatches[0].on_hand, mismatches[0].ledger_total), (99, 12))
        self.assertEqual(mismatches[0].difference, 87)
        self.assertEqual(InventoryService.find_ledger_mismatches(warehouse_id=self.dst.pk), [])

    def test_command_reports_and_strict_fails(self):
        out = StringIO()
        call_command("reconcile_inventory", stdout=out)
        self.assertIn("agree", out.getvalue())

        InventoryItem.objects.filter(variant=self.variant).update(on_hand=0)
        out = StringIO()
        call_command("reconcile_inventory", stdout=out)
        self.assertIn("MISMATCH", out.getvalue())

        with self.assertRaises(CommandError):
            call_command("reconcile_inventory", "--strict", stdout=StringIO())

        # never auto-corrects
        self.assertEqual(level(self.variant, self.wh).on_hand, 0)

    def test_task_logs_mismatches(self):
        InventoryItem.objects.filter(variant=self.variant).update(on_hand=1)

        with self.assertLogs("apps.inventory.tasks", level="WARNING"):
            self.assertEqual(run_ledger_reconciliation(), 1)


class InventoryAPITests(APITestCase):
    def setUp(self):
        self.staff = User.objects.create_user(username="manager", password="testpass", is_staff=True)
        self.client.force_authenticate(self.staff)
        self.wh = Warehouse.objects.create(name="Main", code="MAIN", is_default=True)
        self.dst = Warehouse.objects.create(name="Second", code="SECOND")
        self.variant = make_variant("SKU-1", name="Blue Widget")
        self.other = make_variant("SKU-2", name="Red Gadget")

    def test_non_staff_forbidden(self):
        self.client.force_authenticate(User.objects.create_user(username="shopper", password="x"))
        res = self.client.get("/api/v1/inventory/items/")
        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)

    def test_create_adjustment(self):
        res = self.client.post("/api/v1/inventory/adjustments/", {
            "variant_id": self.variant.pk,
            "warehouse_id": self.wh.pk,
            "adjustment_mode": "SET_ON_HAND",
            "qty": 40,
            "reason_code": "COUNT_CORRECTION",
        }, format="json")

        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        self.assertEqual(res.data["qty_after"], 40)
        self.assertEqual(res.data["performed_by"], "manager")
        self.assertEqual(InventoryMovement.objects.get().performed_by, self.staff)

        listing = self.client.get("/api/v1/inventory/adjustments/", {"variant_id": self.variant.pk})
        self.assertEqual(listing.data["count"], 1)

    def test_adjustment_unknown_variant(self):
        res = self.client.post("/api/v1/inventory/adjustments/", {
            "variant_id": 999999, "warehouse_id": self.wh.pk, "adjustment_mode": "DELTA_ON_HAND", "qty": 1,
        }, format="json")
        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(res.data["code"], "not_found")

    def test_reserve_and_release_endpoints(self):
        stock(self.variant, self.wh, 5)
        payload = {"variant_id": self.variant.pk, "warehouse_id": self.wh.pk, "qty": 2}

        res = self.client.post("/api/v1/inventory/reservations/reserve/", payload, format="json")
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["inventory_item"], {"on_hand": 5, "reserved": 2, "available": 3})

        res = self.client.post("/api/v1/inventory/reservations/reserve/", {**payload, "qty": 4}, format="json")
        self.assertEqual(res.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)
        self.assertEqual(res.data["code"], "insufficient_stock")

        res = self.client.post("/api/v1/inventory/reservations/release/", payload, format="json")
        self.assertEqual(res.data["inventory_item"]["reserved"], 0)

        res = self.client.post("/api/v1/inventory/reservations/release/", {**payload, "qty": 0}, format="json")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)

    def test_item_list_filters_and_sort(self):
        stock(self.variant, self.wh, 10)
        stock(self.other, self.wh, 2)
        InventoryService.reserve_stock(self.variant.pk, self.wh.pk, 9)
        InventoryItem.objects.filter(variant=self.other).update(safety_stock=5)

        res = self.client.get("/api/v1/inventory/items/", {"sort": "available"})
        self.assertEqual([row["sku"] for row in res.data["results"]], ["SKU-1", "SKU-2"])
        self.assertEqual(res.data["results"][0]["available"], 1)

        res = self.client.get("/api/v1/inventory/items/")
        self.assertEqual(res.data["results"][0]["sku"], "SKU-1")  # default -on_hand

        res = self.client.get("/api/v1/inventory/items/", {"below_safety": "true"})
        self.assertEqual([row["sku"] for row in res.data["results"]], ["SKU-2"])
        self.assertTrue(res.data["results"][0]["is_below_safety_stock"])

        res = self.client.get("/api/v1/inventory/items/", {"q": "widget"})
        self.assertEqual(res.data["count"], 1)

    def test_low_stock_requires_warehouse(self):
        res = self.client.get("/api/v1/inventory/items/low_stock/")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)

        res = self.client.get("/api/v1/inventory/items/low_stock/", {"warehouse_id": "abc"})
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["code"], "validation_error")

        stock(self.variant, self.wh, 3)
        InventoryItem.objects.filter(variant=self.variant).update(reorder_point=3)
        res = self.client.get("/api/v1/inventory/items/low_stock/", {"warehouse_id": self.wh.pk})
        self.assertEqual(res.data["count"], 1)
        self.assertTrue(res.data["results"][0]["needs_reorder"])

    def test_patch_thresholds_only(self):
        stock(self.variant, self.wh, 3)
        item = level(self.variant, self.wh)

        res = self.client.patch(
            f"/api/v1/inventory/items/{item.pk}/", {"safety_stock": 4, "on_hand": 500}, format="json"
        )

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        item.refresh_from_db()
        self.assertEqual((item.safety_stock, item.on_hand), (4, 3))

    def test_transfer_flow(self):
        stock(self.variant, self.wh, 10)
        res = self.client.post("/api/v1/inventory/transfers/", {
            "from_warehouse_id": self.wh.pk,
            "to_warehouse_id": self.dst.pk,
            "items": [{"variant_id": self.variant.pk, "qty": 4}],
        }, format="json")
        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        transfer_id = res.data["id"]
        self.assertEqual(res.data["created_by"], "manager")

        res = self.client.post(f"/api/v1/inventory/transfers/{transfer_id}/dispatch/")
        self.assertEqual(res.data["status"], "in_transit")

        res = self.client.post(f"/api/v1/inventory/transfers/{transfer_id}/cancel/")
        self.assertEqual(res.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(res.data["code"], "invalid_transition")

        res = self.client.patch(f"/api/v1/inventory/transfers/{transfer_id}/", {"items": []}, format="json")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)

        res = self.client.post(f"/api/v1/inventory/transfers/{transfer_id}/receive/")
        self.assertEqual(res.data["status"], "received")
        self.assertEqual(level(self.variant, self.dst).on_hand, 4)

        res = self.client.get("/api/v1/inventory/transfers/", {"status": "received"})
        self.assertEqual(res.data["count"], 1)

    def test_transfer_same_warehouse_rejected(self):
        res = self.client.post("/api/v1/inventory/transfers/", {
            "from_warehouse_id": self.wh.pk,
            "to_warehouse_id": self.wh.pk,
            "items": [{"variant_id": self.variant.pk, "qty": 1}],
        }, format="json")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)

    def test_movement_list_filters(self):
        stock(self.variant, self.wh, 10)
        InventoryService.reserve_stock(self.variant.pk, self.wh.pk, 1, reference_type="order", reference_id="55")

        res = self.client.get("/api/v1/inventory/movements/", {"movement_type": "reservation"})
        self.assertEqual(res.data["count"], 1)
        self.assertEqual(res.data["results"][0]["reference_id"], "55")

        res = self.client.get("/api/v1/inventory/movements/", {"sort": "qty_change"})
        self.assertEqual([row["qty_change"] for row in res.data["results"]], [0, 10])

        res = self.client.get("/api/v1/inventory/movements/", {"warehouse_id": self.dst.pk})
        self.assertEqual(res.data["count"], 0)

    def test_transfer_list_sort(self):
        first = TransferService.create_transfer(self.wh.pk, self.dst.pk, [])
        second = TransferService.create_transfer(self.dst.pk, self.wh.pk, [])
        TransferService.cancel_transfer(second.pk)

        res = self.client.get("/api/v1/inventory/transfers/", {"sort": "status"})
        self.assertEqual([t["id"] for t in res.data["results"]], [second.pk, first.pk])

        res = self.client.get("/api/v1/inventory/transfers/", {"sort": "-status"})
        self.assertEqual([t["id"] for t in res.data["results"]], [first.pk, second.pk])
