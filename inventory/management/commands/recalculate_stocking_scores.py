from django.core.management.base import BaseCommand, CommandError
from inventory.scoring import recalculate_stocking_scores


class Command(BaseCommand):
    help = "Recompute and store the stocking score of every part (or only the given part numbers)."

    def add_arguments(self, parser):
        parser.add_argument("part_numbers", nargs="*", help="Limit the run to these part numbers")

    def handle(self, *args, **options):
        result = recalculate_stocking_scores(part_numbers=options["part_numbers"] or None)
        for part_number, error in sorted(result.failures.items()):
            self.stderr.write(f"{part_number}: {error}")
        self.stdout.write(self.style.SUCCESS(f"Stocking scores updated: {result.updated}"))
        if not result.ok:
            raise CommandError(f"{len(result.failures)} part(s) failed")
