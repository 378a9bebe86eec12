from django.db import models


class Warehouse(models.Model):
    name = models.CharField(max_length=191)
    code = models.CharField(max_length=64, unique=True, db_index=True)

    address1 = models.CharField(max_length=255, blank=True, null=True)
    address2 = models.CharField(max_length=255, blank=True, null=True)
    city = models.CharField(max_length=120, blank=True, null=True)
    state_region = models.CharField(max_length=120, blank=True, null=True)
    postal_code = models.CharField(max_length=30, blank=True, null=True)
    country_code = models.CharField(max_length=2, blank=True, null=True)

    # At most one default; kept single by WarehouseService, not by the DB
    is_default = models.BooleanField(default=False, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return f"{self.name} ({self.code})"
