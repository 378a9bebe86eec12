import logging
from django.db.models import Q

from rest_framework import viewsets, status
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, IsAdminUser

from apps.utils.utils import apply_sort, query_flag
from .models import Warehouse
from .serializers import WarehouseSerializer
from .services import WarehouseService

logger = logging.getLogger(__name__)


class WarehouseViewSet(viewsets.ModelViewSet):
    """
    Admin CRUD for warehouses. Writes go through WarehouseService so the
    single-default rule holds.
    """
    serializer_class = WarehouseSerializer
    permission_classes = [IsAuthenticated, IsAdminUser]
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']

    def get_queryset(self):
        qs = Warehouse.objects.all()
        params = self.request.query_params

        if q := params.get('q'):
            qs = qs.filter(Q(name__icontains=q) | Q(code__icontains=q))
        if 'is_default' in params:
            qs = qs.filter(is_default=query_flag(params, 'is_default'))

        return apply_sort(qs, params.get('sort'), {'name', 'code', 'created_at'}, 'name')

    def perform_create(self, serializer):
        serializer.instance = WarehouseService.create_warehouse(**serializer.validated_data)

    def perform_update(self, serializer):
        serializer.instance = WarehouseService.update_warehouse(
            serializer.instance, **serializer.validated_data
        )

    def destroy(self, request, *args, **kwargs):
        WarehouseService.delete_warehouse(self.get_object())
        return Response({"message": "Warehouse deleted successfully"}, status=status.HTTP_200_OK)
