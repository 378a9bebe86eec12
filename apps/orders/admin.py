from django.contrib import admin
from .models import Order, OrderItem, Fulfillment, FulfillmentItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    raw_id_fields = ('variant',)


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ('order_number', 'user', 'status', 'created_at')
    list_filter = ('status', 'created_at')
    search_fields = ('order_number',)
    inlines = [OrderItemInline]


class FulfillmentItemInline(admin.TabularInline):
    model = FulfillmentItem
    extra = 0
    readonly_fields = ('order_item', 'qty')

    def has_add_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Fulfillment)
class FulfillmentAdmin(admin.ModelAdmin):
    """
    Read-mostly: creation and status changes move stock, so they go
    through the API where FulfillmentService runs.
    """
    list_display = ('id', 'order', 'status', 'carrier', 'tracking_number', 'shipped_at', 'delivered_at')
    list_filter = ('status', 'carrier')
    search_fields = ('order__order_number', 'tracking_number')
    readonly_fields = ('order', 'status', 'shipped_at', 'delivered_at', 'created_at', 'updated_at')
    inlines = [FulfillmentItemInline]

    def has_add_permission(self, request):
        return False
