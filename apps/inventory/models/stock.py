from django.db import models
from apps.utils.models import TimestampedModel

__all__ = ["InventoryItem"]


class InventoryItem(TimestampedModel):
    """
    Stock level of one variant in one warehouse.
    Created lazily on the first movement for the pair; never deleted.
    Only InventoryService / TransferService mutate the counters.
    """
    variant = models.ForeignKey(
        'catalog.ProductVariant',
        on_delete=models.PROTECT,
        related_name='inventory_items'
    )
    warehouse = models.ForeignKey(
        'warehouse.Warehouse',
        on_delete=models.PROTECT,
        related_name='inventory_items'
    )

    # Physical count; an administrative adjustment may drive it negative
    on_hand = models.IntegerField(default=0)

    # Earmarked for open orders, not yet deducted
    reserved = models.IntegerField(default=0)

    safety_stock = models.IntegerField(default=0, help_text="Minimum stock threshold")
    reorder_point = models.IntegerField(default=0, help_text="Reorder trigger level")

    class Meta:
        db_table = "inventory_items"
        verbose_name = "Inventory Item"
        constraints = [
            models.UniqueConstraint(
                fields=['variant', 'warehouse'],
                name='inventory_item_variant_warehouse_uniq'
            ),
            models.CheckConstraint(
                condition=models.Q(reserved__gte=0),
                name='inventory_item_reserved_non_negative'
            ),
        ]
        indexes = [
            models.Index(fields=['warehouse', 'variant'], name='inventory_item_wh_variant_idx'),
        ]

    @property
    def available(self):
        return max(0, self.on_hand - self.reserved)

    @property
    def is_below_safety_stock(self):
        return self.on_hand < self.safety_stock

    @property
    def needs_reorder(self):
        return self.on_hand <= self.reorder_point

    def __str__(self):
        return f"{self.variant_id}@{self.warehouse_id} | On hand: {self.on_hand} | Avail: {self.available}"
