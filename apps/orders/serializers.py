from rest_framework import serializers
from .models import Fulfillment, FulfillmentItem


class FulfillmentItemSerializer(serializers.ModelSerializer):
    order_item_id = serializers.IntegerField(read_only=True)
    variant_id = serializers.IntegerField(source='order_item.variant_id', read_only=True)
    product_name = serializers.CharField(source='order_item.product_name', read_only=True)
    variant_sku = serializers.CharField(source='order_item.variant_sku', read_only=True)

    class Meta:
        model = FulfillmentItem
        fields = ['id', 'order_item_id', 'variant_id', 'product_name', 'variant_sku', 'qty']


class FulfillmentSerializer(serializers.ModelSerializer):
    order_id = serializers.IntegerField(read_only=True)
    order_number = serializers.CharField(source='order.order_number', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    items = FulfillmentItemSerializer(many=True, read_only=True)

    class Meta:
        model = Fulfillment
        fields = [
            'id', 'order_id', 'order_number', 'status', 'status_display',
            'tracking_number', 'carrier', 'shipped_at', 'delivered_at',
            'items', 'created_at', 'updated_at',
        ]


class FulfillmentLineSerializer(serializers.Serializer):
    order_item_id = serializers.IntegerField()
    qty = serializers.IntegerField(min_value=1)


class CreateFulfillmentSerializer(serializers.Serializer):
    items = FulfillmentLineSerializer(many=True, allow_empty=False)
    warehouse_id = serializers.IntegerField(required=False, allow_null=True)
    tracking_number = serializers.CharField(max_length=128, required=False, allow_null=True, allow_blank=True)
    carrier = serializers.CharField(max_length=64, required=False, allow_null=True, allow_blank=True)


class UpdateFulfillmentSerializer(serializers.Serializer):
    tracking_number = serializers.CharField(max_length=128, required=False, allow_null=True, allow_blank=True)
    carrier = serializers.CharField(max_length=64, required=False, allow_null=True, allow_blank=True)


class FulfillmentStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Fulfillment.Status.choices)
