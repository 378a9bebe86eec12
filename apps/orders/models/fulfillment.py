from django.db import models
from .order import Order
from .item import OrderItem

__all__ = ["Fulfillment", "FulfillmentItem"]


class Fulfillment(models.Model):
    """
    One shipment of (part of) an order. Creating it deducts stock;
    moving it to RETURNED puts the stock back.
    """
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        PACKED = "packed", "Packed"
        SHIPPED = "shipped", "Shipped"
        DELIVERED = "delivered", "Delivered"
        CANCELED = "canceled", "Canceled"
        RETURNED = "returned", "Returned"

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='fulfillments')
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING, db_index=True)

    tracking_number = models.CharField(max_length=128, null=True, blank=True)
    carrier = models.CharField(max_length=64, null=True, blank=True)

    shipped_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"Fulfillment #{self.pk} [{self.status}]"


class FulfillmentItem(models.Model):
    fulfillment = models.ForeignKey(Fulfillment, on_delete=models.CASCADE, related_name='items')
    order_item = models.ForeignKey(OrderItem, on_delete=models.PROTECT, related_name='fulfillment_items')
    qty = models.PositiveIntegerField()

    class Meta:
        ordering = ['id']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(qty__gte=1),
                name='fulfillment_item_qty_positive'
            ),
        ]

    def __str__(self):
        return f"{self.qty}x {self.order_item_id}"
