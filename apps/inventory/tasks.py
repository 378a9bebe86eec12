import logging
from celery import shared_task

from .services import InventoryService

logger = logging.getLogger(__name__)


@shared_task(time_limit=600)
def run_ledger_reconciliation(warehouse_id=None):
    """
    Nightly check that each stock level equals the sum of its ledger.
    Reports only; fixes are explicit adjustments.
    """
    mismatches = InventoryService.find_ledger_mismatches(warehouse_id=warehouse_id)

    for m in mismatches:
        logger.warning(
            f"Ledger mismatch variant {m.variant_id} @ warehouse {m.warehouse_id}: "
            f"on_hand={m.on_hand} != ledger={m.ledger_total}",
            extra={"variant_id": m.variant_id, "warehouse_id": m.warehouse_id},
        )

    logger.info(f"Ledger reconciliation finished: {len(mismatches)} mismatch(es)")
    return len(mismatches)
