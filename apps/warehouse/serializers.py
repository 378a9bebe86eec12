from rest_framework import serializers
from .models import Warehouse


class WarehouseSerializer(serializers.ModelSerializer):
    class Meta:
        model = Warehouse
        fields = [
            'id', 'name', 'code',
            'address1', 'address2', 'city', 'state_region', 'postal_code', 'country_code',
            'is_default', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def validate_country_code(self, value):
        if value and len(value) != 2:
            raise serializers.ValidationError("Country code must be 2 characters.")
        return value.upper() if value else value
