from django.db.models import F, Value
from django.db.models.functions import Greatest
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import generics, mixins, status, views, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.response import Response

from apps.utils.exceptions import BusinessLogicException
from apps.utils.utils import apply_sort

from .filters import InventoryAdjustmentFilter, InventoryItemFilter, InventoryMovementFilter, TransferFilter
from .models import InventoryAdjustment, InventoryItem, InventoryMovement, Transfer
from .serializers import (
    InventoryAdjustmentSerializer,
    InventoryItemSerializer,
    InventoryMovementSerializer,
    ReservationSerializer,
    StockAdjustmentSerializer,
    TransferSerializer,
    TransferWriteSerializer,
)
from .services import InventoryService, TransferService

ITEM_SORTS = {
    'on_hand': 'on_hand',
    'reserved': 'reserved',
    'available': 'available_qty',
    'created_at': 'created_at',
}
MOVEMENT_SORTS = {'performed_at', 'created_at', 'qty_change'}
TRANSFER_SORTS = {'status', 'created_at'}


class InventoryItemViewSet(mixins.ListModelMixin,
                           mixins.RetrieveModelMixin,
                           mixins.UpdateModelMixin,
                           viewsets.GenericViewSet):
    """
    Stock levels. Counters are read-only here; only thresholds can be edited.
    """
    serializer_class = InventoryItemSerializer
    permission_classes = [IsAuthenticated, IsAdminUser]
    filter_backends = [DjangoFilterBackend]
    filterset_class = InventoryItemFilter
    http_method_names = ['get', 'patch', 'head', 'options']

    def get_queryset(self):
        qs = (
            InventoryItem.objects
            .select_related('variant__product', 'warehouse')
            .annotate(available_qty=Greatest(F('on_hand') - F('reserved'), Value(0)))
        )
        return apply_sort(qs, self.request.query_params.get('sort'), ITEM_SORTS, '-on_hand')

    @action(detail=False, methods=['get'])
    def low_stock(self, request):
        warehouse_id = request.query_params.get('warehouse_id')
        if not warehouse_id:
            raise BusinessLogicException("Warehouse ID required", code="validation_error")
        try:
            warehouse_id = int(warehouse_id)
        except ValueError:
            raise BusinessLogicException("Warehouse ID must be an integer", code="validation_error")

        stocks = self.get_queryset().filter(
            warehouse_id=warehouse_id,
            on_hand__lte=F('reorder_point')
        )

        page = self.paginate_queryset(stocks)
        serializer = self.get_serializer(page, many=True)
        return self.get_paginated_response(serializer.data)


class InventoryMovementListAPIView(generics.ListAPIView):
    """
    Ledger history, newest first.
    """
    serializer_class = InventoryMovementSerializer
    permission_classes = [IsAuthenticated, IsAdminUser]
    filter_backends = [DjangoFilterBackend]
    filterset_class = InventoryMovementFilter

    def get_queryset(self):
        qs = InventoryMovement.objects.select_related('variant', 'performed_by')
        return apply_sort(qs, self.request.query_params.get('sort'), MOVEMENT_SORTS, '-performed_at')


class InventoryAdjustmentViewSet(mixins.ListModelMixin,
                                 mixins.CreateModelMixin,
                                 viewsets.GenericViewSet):
    """
    Manual override for Warehouse Managers.
    """
    queryset = InventoryAdjustment.objects.select_related('performed_by').all()
    serializer_class = InventoryAdjustmentSerializer
    permission_classes = [IsAuthenticated, IsAdminUser]
    filter_backends = [DjangoFilterBackend]
    filterset_class = InventoryAdjustmentFilter

    def create(self, request, *args, **kwargs):
        serializer = StockAdjustmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        adjustment = InventoryService.adjust_stock(
            performed_by=request.user,
            **serializer.validated_data
        )
        return Response(InventoryAdjustmentSerializer(adjustment).data, status=status.HTTP_201_CREATED)


def _level_payload(item):
    return {
        "on_hand": item.on_hand,
        "reserved": item.reserved,
        "available": item.available,
    }


class ReserveStockAPIView(views.APIView):
    permission_classes = [IsAuthenticated, IsAdminUser]

    def post(self, request):
        serializer = ReservationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        item = InventoryService.reserve_stock(performed_by=request.user, **serializer.validated_data)
        return Response(
            {"message": "Stock reserved successfully", "inventory_item": _level_payload(item)},
            status=status.HTTP_200_OK
        )


class ReleaseStockAPIView(views.APIView):
    permission_classes = [IsAuthenticated, IsAdminUser]

    def post(self, request):
        serializer = ReservationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        item = InventoryService.release_stock(performed_by=request.user, **serializer.validated_data)
        return Response(
            {"message": "Stock released successfully", "inventory_item": _level_payload(item)},
            status=status.HTTP_200_OK
        )


class TransferViewSet(mixins.ListModelMixin,
                      mixins.RetrieveModelMixin,
                      viewsets.GenericViewSet):
    """
    draft -> in_transit -> received, or draft -> canceled.
    Every write goes through TransferService.
    """
    serializer_class = TransferSerializer
    permission_classes = [IsAuthenticated, IsAdminUser]
    filter_backends = [DjangoFilterBackend]
    filterset_class = TransferFilter
    http_method_names = ['get', 'post', 'patch', 'head', 'options']

    def get_queryset(self):
        qs = (
            Transfer.objects
            .select_related('from_warehouse', 'to_warehouse', 'created_by')
            .prefetch_related('items__variant__product')
        )
        return apply_sort(qs, self.request.query_params.get('sort'), TRANSFER_SORTS, '-created_at')

    def create(self, request, *args, **kwargs):
        serializer = TransferWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        transfer = TransferService.create_transfer(created_by=request.user, **serializer.validated_data)
        return Response(TransferSerializer(transfer).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, pk=None):
        serializer = TransferWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        transfer = TransferService.update_transfer(pk, **serializer.validated_data)
        return Response(TransferSerializer(transfer).data)

    # Named to avoid shadowing APIView.dispatch
    @action(detail=True, methods=['post'], url_path='dispatch', url_name='dispatch')
    def dispatch_transfer(self, request, pk=None):
        transfer = TransferService.dispatch_transfer(pk, performed_by=request.user)
        return Response(TransferSerializer(transfer).data)

    @action(detail=True, methods=['post'])
    def receive(self, request, pk=None):
        transfer = TransferService.receive_transfer(pk, performed_by=request.user)
        return Response(TransferSerializer(transfer).data)

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        transfer = TransferService.cancel_transfer(pk)
        return Response(TransferSerializer(transfer).data)
