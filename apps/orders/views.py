from django.shortcuts import get_object_or_404
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import Fulfillment, Order
from .serializers import (
    CreateFulfillmentSerializer,
    FulfillmentSerializer,
    FulfillmentStatusSerializer,
    UpdateFulfillmentSerializer,
)
from .services import FulfillmentService


class OrderFulfillmentCreateView(APIView):
    """
    POST /orders/{order_id}/fulfillments/
    Creates the fulfillment and deducts its stock atomically.
    """
    permission_classes = [IsAuthenticated, IsAdminUser]

    def post(self, request, order_id):
        order = get_object_or_404(Order, pk=order_id)

        serializer = CreateFulfillmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        fulfillment = FulfillmentService.create_fulfillment(
            order,
            performed_by=request.user,
            **serializer.validated_data
        )
        return Response(
            {"message": "Fulfillment created successfully.", "data": FulfillmentSerializer(fulfillment).data},
            status=status.HTTP_201_CREATED
        )


class FulfillmentViewSet(mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    serializer_class = FulfillmentSerializer
    permission_classes = [IsAuthenticated, IsAdminUser]
    http_method_names = ['get', 'post', 'patch', 'head', 'options']

    def get_queryset(self):
        return Fulfillment.objects.select_related('order').prefetch_related('items__order_item')

    def partial_update(self, request, pk=None):
        serializer = UpdateFulfillmentSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        fulfillment = FulfillmentService.update_details(self.get_object(), **serializer.validated_data)
        return Response(
            {"message": "Fulfillment updated successfully.", "data": FulfillmentSerializer(fulfillment).data}
        )

    @action(detail=True, methods=['post'], url_path='status')
    def change_status(self, request, pk=None):
        serializer = FulfillmentStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        fulfillment = FulfillmentService.update_status(
            self.get_object(),
            serializer.validated_data['status'],
            performed_by=request.user,
        )
        return Response(
            {"message": "Fulfillment status updated successfully.", "data": FulfillmentSerializer(fulfillment).data}
        )
