from django.core.management.base import BaseCommand, CommandError

from apps.inventory.services import InventoryService


class Command(BaseCommand):
    help = "Checks every InventoryItem.on_hand against the sum of its ledger movements"

    def add_arguments(self, parser):
        parser.add_argument('--warehouse', type=int, default=None, help="Limit the check to one warehouse id")
        parser.add_argument(
            '--strict',
            action='store_true',
            help="Exit with an error when any mismatch is found",
        )

    def handle(self, *args, **options):
        warehouse_id = options['warehouse']
        scope = f"warehouse {warehouse_id}" if warehouse_id else "all warehouses"
        self.stdout.write(f"Starting Inventory Reconciliation ({scope})...")

        mismatches = InventoryService.find_ledger_mismatches(warehouse_id=warehouse_id)

        for m in mismatches:
            self.stdout.write(
                self.style.WARNING(
                    f"MISMATCH variant {m.variant_id} @ warehouse {m.warehouse_id} :: "
                    f"on_hand={m.on_hand} ledger={m.ledger_total} (diff {m.difference:+d})"
                )
            )

        if not mismatches:
            self.stdout.write(self.style.SUCCESS("Reconciliation Complete. Ledger and stock levels agree."))
            return

        summary = f"Reconciliation Complete. Found {len(mismatches)} discrepancies; correct them with adjustments."
        if options['strict']:
            raise CommandError(summary)
        self.stdout.write(self.style.WARNING(summary))
