import logging
from dataclasses import dataclass
from typing import List, Dict, Optional

from django.db import transaction
from django.db.models import F, Sum

from apps.catalog.models import ProductVariant
from apps.utils.exceptions import (
    BusinessLogicException,
    EntityNotFound,
    InsufficientReservedError,
    InsufficientStockError,
    InvalidTransitionError,
    MissingWarehouseError,
    UnprocessableError,
)
from apps.utils.utils import now
from apps.warehouse.models import Warehouse
from apps.warehouse.services import resolve_warehouse

from .models import (
    AdjustmentMode,
    InventoryAdjustment,
    InventoryItem,
    InventoryMovement,
    MovementType,
    Transfer,
    TransferItem,
    TransferStatus,
)

logger = logging.getLogger(__name__)

FULFILLMENT_REFERENCE = "fulfillment"
ADJUSTMENT_REFERENCE = "inventory_adjustment"
TRANSFER_REFERENCE = "transfer"


@dataclass(frozen=True)
class LedgerMismatch:
    variant_id: int
    warehouse_id: int
    on_hand: int
    ledger_total: int

    @property
    def difference(self):
        return self.on_hand - self.ledger_total


class InventoryService:
    """
    Core Logic for Inventory Management.
    ALL stock changes must pass through here.
    Every public operation is one transaction: counters and ledger rows
    are written together or not at all.
    """

    @staticmethod
    @transaction.atomic
    def get_or_create_level(variant_id, warehouse_id, lock: bool = True) -> InventoryItem:
        """
        Returns the (variant, warehouse) stock row, creating it with zero
        counters on first use. With lock=True the row is held FOR UPDATE
        until the caller's transaction ends.
        """
        qs = InventoryItem.objects.select_for_update() if lock else InventoryItem.objects.all()
        item = qs.filter(variant_id=variant_id, warehouse_id=warehouse_id).first()
        if item is not None:
            return item

        # FK constraints may be deferred; check now so callers get a 404
        if not ProductVariant.objects.filter(pk=variant_id).exists():
            raise EntityNotFound(f"Variant {variant_id} not found.")
        if not Warehouse.objects.filter(pk=warehouse_id).exists():
            raise EntityNotFound(f"Warehouse {warehouse_id} not found.")

        item, created = qs.get_or_create(
            variant_id=variant_id,
            warehouse_id=warehouse_id,
            defaults={"on_hand": 0, "reserved": 0},
        )
        if created:
            logger.info(
                f"Inventory level created for variant {variant_id} in warehouse {warehouse_id}",
                extra={"variant_id": variant_id, "warehouse_id": warehouse_id},
            )
        return item

    @staticmethod
    def _shift(item: InventoryItem, on_hand: int = 0, reserved: int = 0) -> InventoryItem:
        """
        Applies counter deltas atomically at the DB level and reloads the row.
        Caller holds the row lock.
        """
        fields = ["updated_at"]
        if on_hand:
            item.on_hand = F("on_hand") + on_hand
            fields.append("on_hand")
        if reserved:
            item.reserved = F("reserved") + reserved
            fields.append("reserved")
        item.save(update_fields=fields)
        item.refresh_from_db()
        return item

    @staticmethod
    def record_movement(
        variant_id,
        warehouse_id,
        qty_change: int,
        movement_type: str,
        reference_type: Optional[str] = None,
        reference_id=None,
        unit_cost=None,
        reason_code: Optional[str] = None,
        note: Optional[str] = None,
        performed_by=None,
    ) -> InventoryMovement:
        """
        Single constructor for ledger rows. Must run inside the transaction
        that changed the counters.
        """
        return InventoryMovement.objects.create(
            variant_id=variant_id,
            warehouse_id=warehouse_id,
            qty_change=qty_change,
            movement_type=movement_type,
            reference_type=reference_type,
            reference_id=str(reference_id) if reference_id is not None else None,
            unit_cost=unit_cost,
            reason_code=reason_code,
            note=note,
            performed_by=performed_by,
            performed_at=now(),
        )

    # ------------------------------------------------------------------
    # Adjustments
    # ------------------------------------------------------------------

    @staticmethod
    @transaction.atomic
    def adjust_stock(
        variant_id,
        warehouse_id,
        adjustment_mode: str,
        qty: int,
        unit_cost=None,
        reason_code: Optional[str] = None,
        note: Optional[str] = None,
        performed_by=None,
    ) -> InventoryAdjustment:
        """
        For Cycle Counts / Audits.
        SET_ON_HAND replaces the count, DELTA_ON_HAND shifts it.
        """
        item = InventoryService.get_or_create_level(variant_id, warehouse_id)
        qty_before = item.on_hand

        if adjustment_mode == AdjustmentMode.SET_ON_HAND:
            qty_after = qty
            qty_change = qty_after - qty_before
        elif adjustment_mode == AdjustmentMode.DELTA_ON_HAND:
            qty_change = qty
            qty_after = qty_before + qty_change
        else:
            raise BusinessLogicException(
                f"Unknown adjustment mode '{adjustment_mode}'.", code="invalid_adjustment_mode"
            )

        InventoryService._shift(item, on_hand=qty_change)

        adjustment = InventoryAdjustment.objects.create(
            variant_id=variant_id,
            warehouse_id=warehouse_id,
            adjustment_mode=adjustment_mode,
            qty_before=qty_before,
            qty_change=qty_change,
            qty_after=item.on_hand,
            unit_cost=unit_cost,
            reason_code=reason_code,
            note=note,
            performed_by=performed_by,
            performed_at=now(),
        )
        InventoryService.record_movement(
            variant_id=variant_id,
            warehouse_id=warehouse_id,
            qty_change=qty_change,
            movement_type=MovementType.ADJUSTMENT,
            reference_type=ADJUSTMENT_REFERENCE,
            reference_id=adjustment.pk,
            unit_cost=unit_cost,
            reason_code=reason_code,
            note=note,
            performed_by=performed_by,
        )

        log_extra = {"variant_id": variant_id, "warehouse_id": warehouse_id}
        if item.on_hand < 0:
            logger.warning(
                f"Adjustment #{adjustment.pk} left variant {variant_id} negative "
                f"in warehouse {warehouse_id}: on_hand={item.on_hand}",
                extra=log_extra,
            )
        logger.info(
            f"Adjustment #{adjustment.pk} {adjustment_mode}: {qty_before} -> {item.on_hand}",
            extra=log_extra,
        )
        return adjustment

    # ------------------------------------------------------------------
    # Reservations
    # ------------------------------------------------------------------

    @staticmethod
    @transaction.atomic
    def reserve_stock(
        variant_id,
        warehouse_id,
        qty: int,
        reference_type: Optional[str] = None,
        reference_id=None,
        note: Optional[str] = None,
        performed_by=None,
    ) -> InventoryItem:
        """
        Earmarks stock; on_hand is untouched, so the ledger row carries 0.
        """
        item = InventoryService.get_or_create_level(variant_id, warehouse_id)
        available = item.on_hand - item.reserved
        if available < qty:
            raise InsufficientStockError(
                variant_id, available, qty,
                message=f"Insufficient available stock. Available: {available}, Requested: {qty}",
            )

        InventoryService._shift(item, reserved=qty)
        InventoryService.record_movement(
            variant_id=variant_id,
            warehouse_id=warehouse_id,
            qty_change=0,
            movement_type=MovementType.RESERVATION,
            reference_type=reference_type,
            reference_id=reference_id,
            note=note,
            performed_by=performed_by,
        )
        logger.info(
            f"Reserved {qty} of variant {variant_id} in warehouse {warehouse_id}",
            extra={"variant_id": variant_id, "warehouse_id": warehouse_id},
        )
        return item

    @staticmethod
    @transaction.atomic
    def release_stock(
        variant_id,
        warehouse_id,
        qty: int,
        reference_type: Optional[str] = None,
        reference_id=None,
        note: Optional[str] = None,
        performed_by=None,
    ) -> InventoryItem:
        """
        Reverses reservation (e.g., Order Cancellation).
        """
        item = (
            InventoryItem.objects.select_for_update()
            .filter(variant_id=variant_id, warehouse_id=warehouse_id)
            .first()
        )
        if item is None:
            raise EntityNotFound(
                f"No inventory item for variant {variant_id} in warehouse {warehouse_id}."
            )
        if item.reserved < qty:
            raise InsufficientReservedError(
                f"Insufficient reserved stock. Reserved: {item.reserved}, Requested: {qty}"
            )

        InventoryService._shift(item, reserved=-qty)
        InventoryService.record_movement(
            variant_id=variant_id,
            warehouse_id=warehouse_id,
            qty_change=0,
            movement_type=MovementType.RELEASE,
            reference_type=reference_type,
            reference_id=reference_id,
            note=note,
            performed_by=performed_by,
        )
        logger.info(
            f"Released {qty} of variant {variant_id} in warehouse {warehouse_id}",
            extra={"variant_id": variant_id, "warehouse_id": warehouse_id},
        )
        return item

    # ------------------------------------------------------------------
    # Fulfillment
    # ------------------------------------------------------------------

    @staticmethod
    def _fulfillment_lines(fulfillment):
        lines = fulfillment.items.select_related("order_item").order_by("pk")
        # Deterministic lock order across concurrent fulfillments
        return sorted(lines, key=lambda line: (line.order_item.variant_id, line.pk))

    @staticmethod
    @transaction.atomic
    def deduct_for_fulfillment(fulfillment, warehouse_id=None, performed_by=None) -> List[InventoryMovement]:
        """
        Hard deduction (Physical stock leaves warehouse).
        All lines succeed or the whole fulfillment is rolled back.
        """
        warehouse = resolve_warehouse(warehouse_id)
        order_number = fulfillment.order.order_number
        movements = []

        for line in InventoryService._fulfillment_lines(fulfillment):
            variant_id = line.order_item.variant_id
            item = InventoryService.get_or_create_level(variant_id, warehouse.pk)

            available = item.on_hand - item.reserved
            if available < line.qty:
                raise InsufficientStockError(variant_id, available, line.qty)

            InventoryService._shift(item, on_hand=-line.qty)
            movements.append(InventoryService.record_movement(
                variant_id=variant_id,
                warehouse_id=warehouse.pk,
                qty_change=-line.qty,
                movement_type=MovementType.SALE,
                reference_type=FULFILLMENT_REFERENCE,
                reference_id=fulfillment.pk,
                note=f"Fulfillment #{fulfillment.pk} - Order #{order_number}",
                performed_by=performed_by,
            ))

        logger.info(
            f"Deducted {len(movements)} line(s) for fulfillment #{fulfillment.pk} from {warehouse.code}",
            extra={"fulfillment_id": fulfillment.pk, "warehouse_id": warehouse.pk},
        )
        return movements

    @staticmethod
    @transaction.atomic
    def restore_for_return(fulfillment, performed_by=None) -> List[InventoryMovement]:
        """
        Puts returned goods back where the sale took them from.
        Quantities come from the fulfillment items, not from the ledger.
        """
        sale = (
            InventoryMovement.objects
            .filter(
                reference_type=FULFILLMENT_REFERENCE,
                reference_id=str(fulfillment.pk),
                movement_type=MovementType.SALE,
            )
            .select_related("warehouse")
            .order_by("pk")
            .first()
        )
        if sale is not None:
            warehouse = sale.warehouse
        else:
            try:
                warehouse = resolve_warehouse()
            except MissingWarehouseError:
                raise MissingWarehouseError(
                    "No warehouse found. Cannot restore inventory without warehouse information."
                )
            logger.warning(
                f"No sale movements for fulfillment #{fulfillment.pk}; restoring into default warehouse {warehouse.code}",
                extra={"fulfillment_id": fulfillment.pk, "warehouse_id": warehouse.pk},
            )

        order_number = fulfillment.order.order_number
        movements = []

        for line in InventoryService._fulfillment_lines(fulfillment):
            variant_id = line.order_item.variant_id
            item = InventoryService.get_or_create_level(variant_id, warehouse.pk)
            InventoryService._shift(item, on_hand=line.qty)
            movements.append(InventoryService.record_movement(
                variant_id=variant_id,
                warehouse_id=warehouse.pk,
                qty_change=line.qty,
                movement_type=MovementType.RETURN_IN,
                reference_type=FULFILLMENT_REFERENCE,
                reference_id=fulfillment.pk,
                note=f"Returned fulfillment #{fulfillment.pk} - Order #{order_number}",
                performed_by=performed_by,
            ))

        logger.info(
            f"Restored {len(movements)} line(s) for fulfillment #{fulfillment.pk} into {warehouse.code}",
            extra={"fulfillment_id": fulfillment.pk, "warehouse_id": warehouse.pk},
        )
        return movements

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    @staticmethod
    def find_ledger_mismatches(warehouse_id=None) -> List[LedgerMismatch]:
        """
        Compares every stock row with the sum of its ledger.
        Read-only: corrections are explicit adjustments.
        """
        movements = InventoryMovement.objects.all()
        items = InventoryItem.objects.all()
        if warehouse_id is not None:
            movements = movements.filter(warehouse_id=warehouse_id)
            items = items.filter(warehouse_id=warehouse_id)

        ledger: Dict[tuple, int] = {
            (row["variant_id"], row["warehouse_id"]): row["total"] or 0
            for row in movements.order_by().values("variant_id", "warehouse_id").annotate(total=Sum("qty_change"))
        }
        levels: Dict[tuple, int] = {
            (row["variant_id"], row["warehouse_id"]): row["on_hand"]
            for row in items.values("variant_id", "warehouse_id", "on_hand")
        }

        mismatches = []
        for key in sorted(set(ledger) | set(levels)):
            on_hand = levels.get(key, 0)
            total = ledger.get(key, 0)
            if on_hand != total:
                mismatches.append(LedgerMismatch(
                    variant_id=key[0], warehouse_id=key[1], on_hand=on_hand, ledger_total=total
                ))
        return mismatches


class TransferService:
    """
    Warehouse-to-warehouse transfers.

    draft -> in_transit (dispatch): source loses stock
    in_transit -> received (receive): destination gains stock
    draft -> canceled (cancel): no stock effect
    """

    @staticmethod
    def _lock(transfer_id) -> Transfer:
        # Plain lock first; FOR UPDATE cannot span the nullable created_by join
        try:
            return Transfer.objects.select_for_update().get(pk=transfer_id)
        except (Transfer.DoesNotExist, ValueError):
            raise EntityNotFound(f"Transfer {transfer_id} not found.")

    @staticmethod
    def load(transfer_id) -> Transfer:
        try:
            return (
                Transfer.objects
                .select_related("from_warehouse", "to_warehouse", "created_by")
                .prefetch_related("items__variant__product")
                .get(pk=transfer_id)
            )
        except (Transfer.DoesNotExist, ValueError):
            raise EntityNotFound(f"Transfer {transfer_id} not found.")

    @staticmethod
    def _validate_route(from_warehouse_id, to_warehouse_id):
        if str(from_warehouse_id) == str(to_warehouse_id):
            raise UnprocessableError(
                "Source and destination warehouses must be different.", code="same_warehouse"
            )
        resolve_warehouse(from_warehouse_id)
        resolve_warehouse(to_warehouse_id)

    @staticmethod
    def _replace_items(transfer: Transfer, items: List[Dict]):
        variant_ids = {line["variant_id"] for line in items}
        found = set(ProductVariant.objects.filter(pk__in=variant_ids).values_list("pk", flat=True))
        missing = sorted(variant_ids - found)
        if missing:
            raise EntityNotFound(f"Variant(s) not found: {missing}")

        transfer.items.all().delete()
        TransferItem.objects.bulk_create([
            TransferItem(transfer=transfer, variant_id=line["variant_id"], qty=line["qty"])
            for line in items
        ])

    @staticmethod
    @transaction.atomic
    def create_transfer(from_warehouse_id, to_warehouse_id, items: List[Dict], created_by=None) -> Transfer:
        TransferService._validate_route(from_warehouse_id, to_warehouse_id)

        transfer = Transfer.objects.create(
            from_warehouse_id=from_warehouse_id,
            to_warehouse_id=to_warehouse_id,
            status=TransferStatus.DRAFT,
            created_by=created_by,
        )
        TransferService._replace_items(transfer, items)
        logger.info(
            f"Transfer #{transfer.pk} drafted: {from_warehouse_id} -> {to_warehouse_id}, {len(items)} line(s)",
            extra={"transfer_id": transfer.pk},
        )
        return TransferService.load(transfer.pk)

    @staticmethod
    @transaction.atomic
    def update_transfer(transfer_id, from_warehouse_id=None, to_warehouse_id=None, items=None) -> Transfer:
        transfer = TransferService._lock(transfer_id)
        if not transfer.is_draft:
            raise InvalidTransitionError("update transfer", transfer.status, TransferStatus.DRAFT)

        new_from = from_warehouse_id if from_warehouse_id is not None else transfer.from_warehouse_id
        new_to = to_warehouse_id if to_warehouse_id is not None else transfer.to_warehouse_id
        TransferService._validate_route(new_from, new_to)

        transfer.from_warehouse_id = new_from
        transfer.to_warehouse_id = new_to
        transfer.save(update_fields=["from_warehouse", "to_warehouse", "updated_at"])

        if items is not None:
            TransferService._replace_items(transfer, items)

        logger.info(f"Transfer #{transfer.pk} updated", extra={"transfer_id": transfer.pk})
        return TransferService.load(transfer.pk)

    @staticmethod
    @transaction.atomic
    def dispatch_transfer(transfer_id, performed_by=None) -> Transfer:
        """
        No availability check: the source may go negative.
        """
        transfer = TransferService._lock(transfer_id)
        if not transfer.is_draft:
            raise InvalidTransitionError("dispatch transfer", transfer.status, TransferStatus.DRAFT)

        lines = sorted(transfer.items.all(), key=lambda line: (line.variant_id, line.pk))
        if not lines:
            raise UnprocessableError("Cannot dispatch transfer without items.", code="empty_transfer")

        for line in lines:
            item = InventoryService.get_or_create_level(line.variant_id, transfer.from_warehouse_id)
            InventoryService._shift(item, on_hand=-line.qty)
            InventoryService.record_movement(
                variant_id=line.variant_id,
                warehouse_id=transfer.from_warehouse_id,
                qty_change=-line.qty,
                movement_type=MovementType.TRANSFER_OUT,
                reference_type=TRANSFER_REFERENCE,
                reference_id=transfer.pk,
                performed_by=performed_by,
            )
            if item.on_hand < 0:
                logger.warning(
                    f"Transfer #{transfer.pk} left variant {line.variant_id} negative at source: on_hand={item.on_hand}",
                    extra={"transfer_id": transfer.pk, "variant_id": line.variant_id},
                )

        transfer.status = TransferStatus.IN_TRANSIT
        transfer.dispatched_at = now()
        transfer.save(update_fields=["status", "dispatched_at", "updated_at"])
        logger.info(f"Transfer #{transfer.pk} dispatched", extra={"transfer_id": transfer.pk})
        return TransferService.load(transfer.pk)

    @staticmethod
    @transaction.atomic
    def receive_transfer(transfer_id, performed_by=None) -> Transfer:
        transfer = TransferService._lock(transfer_id)
        if not transfer.is_in_transit:
            raise InvalidTransitionError("receive transfer", transfer.status, TransferStatus.IN_TRANSIT)

        for line in sorted(transfer.items.all(), key=lambda line: (line.variant_id, line.pk)):
            item = InventoryService.get_or_create_level(line.variant_id, transfer.to_warehouse_id)
            InventoryService._shift(item, on_hand=line.qty)
            InventoryService.record_movement(
                variant_id=line.variant_id,
                warehouse_id=transfer.to_warehouse_id,
                qty_change=line.qty,
                movement_type=MovementType.TRANSFER_IN,
                reference_type=TRANSFER_REFERENCE,
                reference_id=transfer.pk,
                performed_by=performed_by,
            )

        transfer.status = TransferStatus.RECEIVED
        transfer.received_at = now()
        transfer.save(update_fields=["status", "received_at", "updated_at"])
        logger.info(f"Transfer #{transfer.pk} received", extra={"transfer_id": transfer.pk})
        return TransferService.load(transfer.pk)

    @staticmethod
    @transaction.atomic
    def cancel_transfer(transfer_id) -> Transfer:
        transfer = TransferService._lock(transfer_id)
        if not transfer.is_draft:
            raise InvalidTransitionError("cancel transfer", transfer.status, TransferStatus.DRAFT)

        transfer.status = TransferStatus.CANCELED
        transfer.canceled_at = now()
        transfer.save(update_fields=["status", "canceled_at", "updated_at"])
        logger.info(f"Transfer #{transfer.pk} canceled", extra={"transfer_id": transfer.pk})
        return TransferService.load(transfer.pk)
