import django_filters
from django.db.models import F, Q

from .models import InventoryAdjustment, InventoryItem, InventoryMovement, MovementType, Transfer, TransferStatus


class InventoryItemFilter(django_filters.FilterSet):
    variant_id = django_filters.NumberFilter(field_name='variant_id')
    warehouse_id = django_filters.NumberFilter(field_name='warehouse_id')
    q = django_filters.CharFilter(method='filter_search')
    below_safety = django_filters.BooleanFilter(method='filter_below_safety')
    needs_reorder = django_filters.BooleanFilter(method='filter_needs_reorder')

    class Meta:
        model = InventoryItem
        fields = ['variant_id', 'warehouse_id']

    def filter_search(self, queryset, name, value):
        return queryset.filter(
            Q(variant__sku__icontains=value) | Q(variant__product__name__icontains=value)
        )

    def filter_below_safety(self, queryset, name, value):
        cond = Q(on_hand__lt=F('safety_stock'))
        return queryset.filter(cond) if value else queryset.exclude(cond)

    def filter_needs_reorder(self, queryset, name, value):
        cond = Q(on_hand__lte=F('reorder_point'))
        return queryset.filter(cond) if value else queryset.exclude(cond)


class InventoryMovementFilter(django_filters.FilterSet):
    variant_id = django_filters.NumberFilter(field_name='variant_id')
    warehouse_id = django_filters.NumberFilter(field_name='warehouse_id')
    movement_type = django_filters.ChoiceFilter(choices=MovementType.choices)
    performed_by = django_filters.NumberFilter(field_name='performed_by_id')
    reference_type = django_filters.CharFilter(field_name='reference_type')
    reference_id = django_filters.CharFilter(field_name='reference_id')
    date_from = django_filters.DateFilter(field_name='performed_at', lookup_expr='date__gte')
    date_to = django_filters.DateFilter(field_name='performed_at', lookup_expr='date__lte')

    class Meta:
        model = InventoryMovement
        fields = ['variant_id', 'warehouse_id', 'movement_type']


class InventoryAdjustmentFilter(django_filters.FilterSet):
    variant_id = django_filters.NumberFilter(field_name='variant_id')
    warehouse_id = django_filters.NumberFilter(field_name='warehouse_id')

    class Meta:
        model = InventoryAdjustment
        fields = ['variant_id', 'warehouse_id']


class TransferFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=TransferStatus.choices)
    from_warehouse_id = django_filters.NumberFilter(field_name='from_warehouse_id')
    to_warehouse_id = django_filters.NumberFilter(field_name='to_warehouse_id')

    class Meta:
        model = Transfer
        fields = ['status', 'from_warehouse_id', 'to_warehouse_id']
