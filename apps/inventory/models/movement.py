from django.conf import settings
from django.db import models
from django.utils import timezone
from apps.utils.models import AppendOnlyModel

__all__ = ["InventoryMovement", "MovementType"]


class MovementType(models.TextChoices):
    ADJUSTMENT = "adjustment", "Adjustment"
    SALE = "sale", "Sale"
    RETURN_IN = "return_in", "Return In"
    TRANSFER_IN = "transfer_in", "Transfer In"
    TRANSFER_OUT = "transfer_out", "Transfer Out"
    RESERVATION = "reservation", "Reservation"
    RELEASE = "release", "Release"
    DAMAGED = "damaged", "Damaged"
    EXPIRED = "expired", "Expired"


class InventoryMovement(AppendOnlyModel):
    """
    Immutable Ledger of all inventory changes.
    Sum of qty_change per (variant, warehouse) equals InventoryItem.on_hand.
    """
    variant = models.ForeignKey(
        'catalog.ProductVariant',
        on_delete=models.PROTECT,
        related_name='inventory_movements'
    )
    warehouse = models.ForeignKey(
        'warehouse.Warehouse',
        on_delete=models.PROTECT,
        related_name='inventory_movements'
    )

    qty_change = models.IntegerField(help_text="Signed: + entering, - leaving")
    movement_type = models.CharField(max_length=20, choices=MovementType.choices, db_index=True)

    # Polymorphic pointer to the cause, e.g. ("fulfillment", "42")
    reference_type = models.CharField(max_length=64, null=True, blank=True)
    reference_id = models.CharField(max_length=64, null=True, blank=True)

    unit_cost = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    reason_code = models.CharField(max_length=64, null=True, blank=True)
    note = models.CharField(max_length=500, null=True, blank=True)

    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name='inventory_movements'
    )
    performed_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "inventory_movements"
        ordering = ['-performed_at', '-id']
        indexes = [
            models.Index(fields=['variant', 'performed_at'], name='inv_movement_variant_at_idx'),
            models.Index(fields=['reference_type', 'reference_id'], name='inv_movement_reference_idx'),
            models.Index(fields=['variant', 'warehouse'], name='inv_movement_pair_idx'),
        ]

    def __str__(self):
        return f"{self.movement_type} {self.qty_change:+d} ({self.variant_id}@{self.warehouse_id})"
