from rest_framework import serializers

from .models import (
    AdjustmentMode,
    InventoryAdjustment,
    InventoryItem,
    InventoryMovement,
    Transfer,
    TransferItem,
)


class InventoryItemSerializer(serializers.ModelSerializer):
    variant_id = serializers.IntegerField(read_only=True)
    warehouse_id = serializers.IntegerField(read_only=True)
    sku = serializers.CharField(source='variant.sku', read_only=True)
    product_name = serializers.CharField(source='variant.product.name', read_only=True)
    warehouse_code = serializers.CharField(source='warehouse.code', read_only=True)
    available = serializers.IntegerField(read_only=True)
    is_below_safety_stock = serializers.BooleanField(read_only=True)
    needs_reorder = serializers.BooleanField(read_only=True)

    class Meta:
        model = InventoryItem
        fields = [
            'id', 'variant_id', 'sku', 'product_name',
            'warehouse_id', 'warehouse_code',
            'on_hand', 'reserved', 'available',
            'safety_stock', 'reorder_point',
            'is_below_safety_stock', 'needs_reorder',
            'created_at', 'updated_at',
        ]
        # Counters change only through the ledger
        read_only_fields = ['on_hand', 'reserved']

    def validate_safety_stock(self, value):
        if value < 0:
            raise serializers.ValidationError("Must be zero or greater.")
        return value

    def validate_reorder_point(self, value):
        if value < 0:
            raise serializers.ValidationError("Must be zero or greater.")
        return value


class InventoryMovementSerializer(serializers.ModelSerializer):
    variant_id = serializers.IntegerField(read_only=True)
    warehouse_id = serializers.IntegerField(read_only=True)
    sku = serializers.CharField(source='variant.sku', read_only=True)
    performed_by = serializers.CharField(source='performed_by.get_username', read_only=True, default=None)

    class Meta:
        model = InventoryMovement
        fields = [
            'id', 'variant_id', 'sku', 'warehouse_id',
            'qty_change', 'movement_type',
            'reference_type', 'reference_id',
            'unit_cost', 'reason_code', 'note',
            'performed_by', 'performed_at', 'created_at',
        ]


class InventoryAdjustmentSerializer(serializers.ModelSerializer):
    variant_id = serializers.IntegerField(read_only=True)
    warehouse_id = serializers.IntegerField(read_only=True)
    performed_by = serializers.CharField(source='performed_by.get_username', read_only=True, default=None)

    class Meta:
        model = InventoryAdjustment
        fields = [
            'id', 'variant_id', 'warehouse_id', 'adjustment_mode',
            'qty_before', 'qty_change', 'qty_after',
            'unit_cost', 'reason_code', 'note',
            'performed_by', 'performed_at', 'created_at',
        ]


class StockAdjustmentSerializer(serializers.Serializer):
    variant_id = serializers.IntegerField()
    warehouse_id = serializers.IntegerField()
    adjustment_mode = serializers.ChoiceField(choices=AdjustmentMode.choices)
    qty = serializers.IntegerField()
    unit_cost = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False, allow_null=True)
    reason_code = serializers.CharField(max_length=64, required=False, allow_null=True, allow_blank=True)
    note = serializers.CharField(max_length=500, required=False, allow_null=True, allow_blank=True)


class ReservationSerializer(serializers.Serializer):
    variant_id = serializers.IntegerField()
    warehouse_id = serializers.IntegerField()
    qty = serializers.IntegerField(min_value=1)
    reference_type = serializers.CharField(max_length=64, required=False, allow_null=True)
    reference_id = serializers.CharField(max_length=64, required=False, allow_null=True)
    note = serializers.CharField(max_length=500, required=False, allow_null=True, allow_blank=True)


class TransferLineSerializer(serializers.Serializer):
    variant_id = serializers.IntegerField()
    qty = serializers.IntegerField(min_value=1)


class TransferItemSerializer(serializers.ModelSerializer):
    variant_id = serializers.IntegerField(read_only=True)
    sku = serializers.CharField(source='variant.sku', read_only=True)
    product_name = serializers.CharField(source='variant.product.name', read_only=True)

    class Meta:
        model = TransferItem
        fields = ['id', 'variant_id', 'sku', 'product_name', 'qty']


class TransferSerializer(serializers.ModelSerializer):
    from_warehouse_id = serializers.IntegerField(read_only=True)
    from_warehouse_code = serializers.CharField(source='from_warehouse.code', read_only=True)
    to_warehouse_id = serializers.IntegerField(read_only=True)
    to_warehouse_code = serializers.CharField(source='to_warehouse.code', read_only=True)
    created_by = serializers.CharField(source='created_by.get_username', read_only=True, default=None)
    items = TransferItemSerializer(many=True, read_only=True)

    class Meta:
        model = Transfer
        fields = [
            'id', 'status',
            'from_warehouse_id', 'from_warehouse_code',
            'to_warehouse_id', 'to_warehouse_code',
            'created_by', 'items',
            'dispatched_at', 'received_at', 'canceled_at',
            'created_at', 'updated_at',
        ]


class TransferWriteSerializer(serializers.Serializer):
    """
    Input for create (all fields) and draft update (partial=True).
    """
    from_warehouse_id = serializers.IntegerField()
    to_warehouse_id = serializers.IntegerField()
    items = TransferLineSerializer(many=True, allow_empty=False)

    def validate(self, data):
        from_id = data.get('from_warehouse_id')
        to_id = data.get('to_warehouse_id')
        if from_id is not None and to_id is not None and from_id == to_id:
            raise serializers.ValidationError(
                {"to_warehouse_id": "Destination must differ from the source warehouse."}
            )
        return data
