from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import (
    InventoryItemViewSet,
    InventoryAdjustmentViewSet,
    InventoryMovementListAPIView,
    ReserveStockAPIView,
    ReleaseStockAPIView,
    TransferViewSet,
)

router = DefaultRouter()
router.register(r'items', InventoryItemViewSet, basename='inventory-item')
router.register(r'adjustments', InventoryAdjustmentViewSet, basename='inventory-adjustment')
router.register(r'transfers', TransferViewSet, basename='inventory-transfer')

urlpatterns = [
    path('', include(router.urls)),
    path('movements/', InventoryMovementListAPIView.as_view(), name='inventory-movements'),
    path('reservations/reserve/', ReserveStockAPIView.as_view(), name='inventory-reserve'),
    path('reservations/release/', ReleaseStockAPIView.as_view(), name='inventory-release'),
]
