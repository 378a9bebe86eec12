from django.conf import settings
from django.db import models
from django.utils import timezone
from apps.utils.models import AppendOnlyModel

__all__ = ["InventoryAdjustment", "AdjustmentMode"]


class AdjustmentMode(models.TextChoices):
    SET_ON_HAND = "SET_ON_HAND", "Set on hand (absolute)"
    DELTA_ON_HAND = "DELTA_ON_HAND", "Delta on hand (relative)"


class InventoryAdjustment(AppendOnlyModel):
    """
    Audit record of one manual correction. Always paired with exactly one
    InventoryMovement of type 'adjustment' pointing back at it.
    """
    variant = models.ForeignKey(
        'catalog.ProductVariant',
        on_delete=models.PROTECT,
        related_name='inventory_adjustments'
    )
    warehouse = models.ForeignKey(
        'warehouse.Warehouse',
        on_delete=models.PROTECT,
        related_name='inventory_adjustments'
    )

    adjustment_mode = models.CharField(max_length=20, choices=AdjustmentMode.choices)
    qty_before = models.IntegerField()
    qty_change = models.IntegerField()
    qty_after = models.IntegerField()

    unit_cost = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    reason_code = models.CharField(
        max_length=64, null=True, blank=True,
        help_text="e.g. DAMAGED, LOST, COUNT_CORRECTION"
    )
    note = models.TextField(null=True, blank=True)

    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name='inventory_adjustments'
    )
    performed_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "inventory_adjustments"
        ordering = ['-performed_at', '-id']
        indexes = [
            models.Index(
                fields=['variant', 'warehouse', 'performed_at'],
                name='inv_adjustment_pair_at_idx'
            ),
        ]

    def __str__(self):
        return f"{self.adjustment_mode} {self.qty_before} -> {self.qty_after}"
