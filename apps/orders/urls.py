from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import FulfillmentViewSet, OrderFulfillmentCreateView

router = DefaultRouter()
router.register(r'fulfillments', FulfillmentViewSet, basename='fulfillment')

urlpatterns = [
    path('orders/<int:order_id>/fulfillments/', OrderFulfillmentCreateView.as_view(), name='order-fulfillment-create'),
    path('', include(router.urls)),
]
