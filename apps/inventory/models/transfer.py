from django.conf import settings
from django.db import models

__all__ = ["Transfer", "TransferItem", "TransferStatus"]


class TransferStatus(models.TextChoices):
    DRAFT = "draft", "Draft"
    IN_TRANSIT = "in_transit", "In Transit"
    RECEIVED = "received", "Received"
    CANCELED = "canceled", "Canceled"


class Transfer(models.Model):
    """
    Stock relocation between two warehouses.

    draft -> in_transit -> received
    draft -> canceled

    While in_transit the stock has left the source but not reached the
    destination; the gap is visible in the ledger on purpose.
    """
    from_warehouse = models.ForeignKey(
        'warehouse.Warehouse',
        on_delete=models.PROTECT,
        related_name='transfers_out'
    )
    to_warehouse = models.ForeignKey(
        'warehouse.Warehouse',
        on_delete=models.PROTECT,
        related_name='transfers_in'
    )
    status = models.CharField(
        max_length=20,
        choices=TransferStatus.choices,
        default=TransferStatus.DRAFT,
        db_index=True
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name='transfers_created'
    )

    dispatched_at = models.DateTimeField(null=True, blank=True)
    received_at = models.DateTimeField(null=True, blank=True)
    canceled_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    TERMINAL_STATUSES = (TransferStatus.RECEIVED, TransferStatus.CANCELED)

    class Meta:
        db_table = "transfers"
        ordering = ['-created_at', '-id']
        constraints = [
            models.CheckConstraint(
                condition=~models.Q(from_warehouse=models.F('to_warehouse')),
                name='transfer_distinct_warehouses'
            ),
        ]

    def __str__(self):
        return f"Transfer #{self.pk} [{self.status}]"

    @property
    def is_draft(self):
        return self.status == TransferStatus.DRAFT

    @property
    def is_in_transit(self):
        return self.status == TransferStatus.IN_TRANSIT

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES


class TransferItem(models.Model):
    transfer = models.ForeignKey(Transfer, on_delete=models.CASCADE, related_name='items')
    variant = models.ForeignKey(
        'catalog.ProductVariant',
        on_delete=models.PROTECT,
        related_name='transfer_items'
    )
    qty = models.PositiveIntegerField()

    class Meta:
        db_table = "transfer_items"
        ordering = ['id']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(qty__gt=0),
                name='transfer_item_qty_positive'
            ),
        ]

    def __str__(self):
        return f"{self.qty}x {self.variant_id}"
