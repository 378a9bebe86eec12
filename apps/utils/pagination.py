from django.conf import settings
from rest_framework.pagination import PageNumberPagination


class StandardResultsSetPagination(PageNumberPagination):
    """
    ?page=2&size=50 (size capped at INVENTORY_MAX_PAGE_SIZE)
    """
    page_size = getattr(settings, "INVENTORY_PAGE_SIZE", 15)
    page_size_query_param = "size"
    max_page_size = getattr(settings, "INVENTORY_MAX_PAGE_SIZE", 100)
