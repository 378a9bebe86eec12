from django.contrib import admin
from .models import Warehouse


@admin.register(Warehouse)
class WarehouseAdmin(admin.ModelAdmin):
    list_display = ('name', 'code', 'city', 'country_code', 'is_default')
    list_filter = ('is_default', 'country_code')
    search_fields = ('name', 'code')
    # Default flag goes through the API so only one warehouse keeps it
    readonly_fields = ('is_default',)
