from django.core.management.base import BaseCommand, CommandError
from inventory.planning import recalculate_min_stock_levels


class Command(BaseCommand):
    help = "Refresh min_stock for auto-replenish parts without a manual override (High/Medium confidence only)."

    def handle(self, *args, **options):
        result = recalculate_min_stock_levels()
        for part_number, error in sorted(result.failures.items()):
            self.stderr.write(f"{part_number}: {error}")
        self.stdout.write(
            self.style.SUCCESS(f"Min stock updated: {result.updated}, skipped (low confidence): {result.skipped}")
        )
        if not result.ok:
            raise CommandError(f"{len(result.failures)} part(s) failed")
