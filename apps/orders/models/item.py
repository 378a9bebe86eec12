from django.db import models
from django.db.models import Sum
from .order import Order

__all__ = ["OrderItem"]


class OrderItem(models.Model):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    variant = models.ForeignKey(
        'catalog.ProductVariant',
        on_delete=models.PROTECT,
        related_name='order_items'
    )

    # Snapshot fields (Critical for audit)
    product_name = models.CharField(max_length=255)
    variant_sku = models.CharField(max_length=100)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)

    qty = models.PositiveIntegerField()

    class Meta:
        ordering = ['id']

    @property
    def subtotal(self):
        return self.unit_price * self.qty

    @property
    def fulfilled_qty(self):
        return self.fulfillment_items.aggregate(total=Sum('qty'))['total'] or 0

    @property
    def remaining_qty(self):
        return self.qty - self.fulfilled_qty

    def __str__(self):
        return f"{self.qty}x {self.product_name}"
