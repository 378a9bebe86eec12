from django.urls import path, include
from rest_framework.routers import SimpleRouter
from . import views

# Mounted at /api/v1/warehouses/, so the viewset takes the empty prefix
router = SimpleRouter()
router.register(r'', views.WarehouseViewSet, basename='warehouse')

urlpatterns = [
    path('', include(router.urls)),
]
