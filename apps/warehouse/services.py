import logging
from django.db import transaction
from django.db.models import ProtectedError

from apps.utils.exceptions import EntityNotFound, MissingWarehouseError, ConflictError
from .models import Warehouse

logger = logging.getLogger(__name__)


def resolve_warehouse(warehouse_id=None) -> Warehouse:
    """
    Explicit id wins; otherwise the warehouse flagged as default.
    This is the only place the default-warehouse fallback lives.
    """
    if warehouse_id is not None:
        try:
            return Warehouse.objects.get(pk=warehouse_id)
        except (Warehouse.DoesNotExist, ValueError):
            raise EntityNotFound(f"Warehouse {warehouse_id} not found.")

    warehouse = Warehouse.objects.filter(is_default=True).order_by("pk").first()
    if warehouse is None:
        raise MissingWarehouseError()
    return warehouse


class WarehouseService:

    @staticmethod
    def _clear_other_defaults(exclude_pk=None):
        qs = Warehouse.objects.select_for_update().filter(is_default=True)
        if exclude_pk is not None:
            qs = qs.exclude(pk=exclude_pk)
        # Evaluate first so the rows are locked before the update
        previous = list(qs.values_list("code", flat=True))
        if previous:
            qs.update(is_default=False)
            logger.info(f"Default warehouse flag cleared on {previous}")

    @staticmethod
    @transaction.atomic
    def create_warehouse(**data) -> Warehouse:
        if data.get("is_default"):
            WarehouseService._clear_other_defaults()

        warehouse = Warehouse.objects.create(**data)
        logger.info(f"Warehouse {warehouse.code} created (default={warehouse.is_default})")
        return warehouse

    @staticmethod
    @transaction.atomic
    def update_warehouse(warehouse: Warehouse, **data) -> Warehouse:
        if data.get("is_default"):
            WarehouseService._clear_other_defaults(exclude_pk=warehouse.pk)

        for field, value in data.items():
            setattr(warehouse, field, value)
        warehouse.save()
        return warehouse

    @staticmethod
    @transaction.atomic
    def delete_warehouse(warehouse: Warehouse):
        if warehouse.inventory_items.exists():
            raise ConflictError(
                "Cannot delete warehouse with inventory items. "
                "Please transfer or remove inventory first."
            )
        try:
            warehouse.delete()
        except ProtectedError:
            raise ConflictError("Cannot delete warehouse referenced by transfers or stock history.")
        logger.info(f"Warehouse {warehouse.code} deleted")
