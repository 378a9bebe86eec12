# apps/inventory/admin.py
from django.contrib import admin
from .models import InventoryItem, InventoryMovement, InventoryAdjustment, Transfer, TransferItem


@admin.register(InventoryItem)
class InventoryItemAdmin(admin.ModelAdmin):
    list_display = ('variant', 'warehouse', 'on_hand', 'reserved', 'available', 'safety_stock', 'reorder_point')
    list_filter = ('warehouse',)
    search_fields = ('variant__sku', 'variant__product__name')
    readonly_fields = ('on_hand', 'reserved')  # Protect integrity via UI

    # Levels are created by InventoryService and never removed
    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class ReadOnlyLedgerAdmin(admin.ModelAdmin):
    def has_add_permission(self, request):
        return False  # Logs are immutable/system-generated

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(InventoryMovement)
class InventoryMovementAdmin(ReadOnlyLedgerAdmin):
    list_display = ('performed_at', 'movement_type', 'variant', 'warehouse', 'qty_change', 'reference_type', 'reference_id')
    list_filter = ('movement_type', 'warehouse', 'performed_at')
    search_fields = ('reference_id', 'variant__sku')


@admin.register(InventoryAdjustment)
class InventoryAdjustmentAdmin(ReadOnlyLedgerAdmin):
    list_display = ('performed_at', 'adjustment_mode', 'variant', 'warehouse', 'qty_before', 'qty_after')
    list_filter = ('adjustment_mode', 'warehouse')
    search_fields = ('variant__sku', 'reason_code')


class TransferItemInline(admin.TabularInline):
    model = TransferItem
    extra = 0
    raw_id_fields = ('variant',)

    # obj is the parent transfer; lines are frozen once it leaves draft
    def _editable(self, obj):
        return obj is None or obj.is_draft

    def has_add_permission(self, request, obj=None):
        return self._editable(obj) and super().has_add_permission(request, obj)

    def has_change_permission(self, request, obj=None):
        return self._editable(obj) and super().has_change_permission(request, obj)

    def has_delete_permission(self, request, obj=None):
        return self._editable(obj) and super().has_delete_permission(request, obj)


@admin.register(Transfer)
class TransferAdmin(admin.ModelAdmin):
    list_display = ('id', 'from_warehouse', 'to_warehouse', 'status', 'created_at', 'dispatched_at', 'received_at')
    list_filter = ('status',)
    # Status moves only through TransferService
    readonly_fields = ('status', 'dispatched_at', 'received_at', 'canceled_at', 'created_by')
    inlines = [TransferItemInline]

    def get_readonly_fields(self, request, obj=None):
        fields = super().get_readonly_fields(request, obj)
        if obj is not None and not obj.is_draft:
            return fields + ('from_warehouse', 'to_warehouse')
        return fields

    def has_delete_permission(self, request, obj=None):
        if obj is not None and not obj.is_draft:
            return False
        return super().has_delete_permission(request, obj)
