import logging
from collections import defaultdict
from typing import Dict, List

from django.db import transaction
from django.db.models import Sum

from apps.inventory.services import InventoryService
from apps.utils.exceptions import EntityNotFound, InvalidTransitionError, UnprocessableError
from apps.utils.utils import now
from .models import Fulfillment, FulfillmentItem, Order, OrderItem

logger = logging.getLogger(__name__)


class FulfillmentService:
    """
    Fulfillment lifecycle. Stock moves with it:
    create -> sale movements, status 'returned' -> return_in movements.
    """

    @staticmethod
    def load(fulfillment_id) -> Fulfillment:
        try:
            return (
                Fulfillment.objects
                .select_related('order')
                .prefetch_related('items__order_item')
                .get(pk=fulfillment_id)
            )
        except (Fulfillment.DoesNotExist, ValueError):
            raise EntityNotFound(f"Fulfillment {fulfillment_id} not found.")

    @staticmethod
    def _validate_quantities(order: Order, items: List[Dict]):
        order_items = {oi.pk: oi for oi in OrderItem.objects.select_for_update().filter(order=order)}

        already = dict(
            FulfillmentItem.objects
            .filter(order_item__in=order_items.keys())
            .order_by()
            .values('order_item')
            .annotate(total=Sum('qty'))
            .values_list('order_item', 'total')
        )
        requested = defaultdict(int)

        for line in items:
            order_item_id = line['order_item_id']
            qty = line['qty']

            if order_item_id not in order_items:
                raise UnprocessableError(
                    f"Order item ID {order_item_id} does not belong to this order.",
                    code="validation_error",
                )

            remaining = order_items[order_item_id].qty - already.get(order_item_id, 0) - requested[order_item_id]
            if qty > remaining:
                raise UnprocessableError(
                    f"Quantity for order item ID {order_item_id} exceeds remaining quantity. "
                    f"Remaining: {remaining}, Requested: {qty}",
                    code="validation_error",
                )
            requested[order_item_id] += qty

    @staticmethod
    @transaction.atomic
    def create_fulfillment(
        order: Order,
        items: List[Dict],
        warehouse_id=None,
        tracking_number=None,
        carrier=None,
        performed_by=None,
    ) -> Fulfillment:
        """
        Creates the fulfillment and deducts its stock in one transaction.
        If the deduction fails the fulfillment is rolled back with it.
        """
        FulfillmentService._validate_quantities(order, items)

        fulfillment = Fulfillment.objects.create(
            order=order,
            status=Fulfillment.Status.PENDING,
            tracking_number=tracking_number,
            carrier=carrier,
        )
        FulfillmentItem.objects.bulk_create([
            FulfillmentItem(fulfillment=fulfillment, order_item_id=line['order_item_id'], qty=line['qty'])
            for line in items
        ])

        InventoryService.deduct_for_fulfillment(
            fulfillment, warehouse_id=warehouse_id, performed_by=performed_by
        )

        logger.info(
            f"Fulfillment #{fulfillment.pk} created for order {order.order_number}",
            extra={"fulfillment_id": fulfillment.pk},
        )
        return FulfillmentService.load(fulfillment.pk)

    @staticmethod
    @transaction.atomic
    def update_details(fulfillment: Fulfillment, **data) -> Fulfillment:
        for field in ('tracking_number', 'carrier'):
            if field in data:
                setattr(fulfillment, field, data[field])
        fulfillment.save(update_fields=['tracking_number', 'carrier', 'updated_at'])
        return FulfillmentService.load(fulfillment.pk)

    @staticmethod
    @transaction.atomic
    def update_status(fulfillment: Fulfillment, status: str, performed_by=None) -> Fulfillment:
        fulfillment = Fulfillment.objects.select_for_update().get(pk=fulfillment.pk)
        old_status = fulfillment.status

        if old_status == Fulfillment.Status.RETURNED and status != old_status:
            raise InvalidTransitionError("change fulfillment status", old_status, "not returned")

        if status == Fulfillment.Status.RETURNED and old_status != Fulfillment.Status.RETURNED:
            InventoryService.restore_for_return(fulfillment, performed_by=performed_by)

        fulfillment.status = status
        fields = ['status', 'updated_at']
        if status == Fulfillment.Status.SHIPPED and not fulfillment.shipped_at:
            fulfillment.shipped_at = now()
            fields.append('shipped_at')
        if status == Fulfillment.Status.DELIVERED and not fulfillment.delivered_at:
            fulfillment.delivered_at = now()
            fields.append('delivered_at')
        fulfillment.save(update_fields=fields)

        logger.info(
            f"Fulfillment #{fulfillment.pk}: {old_status} -> {status}",
            extra={"fulfillment_id": fulfillment.pk},
        )
        return FulfillmentService.load(fulfillment.pk)
