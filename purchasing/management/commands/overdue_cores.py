from django.core.management.base import BaseCommand
from purchasing.selectors import list_overdue_cores, outstanding_core_total


class Command(BaseCommand):
    help = "Report unreturned cores older than --days. Advisory only; nothing is changed."

    def add_arguments(self, parser):
        parser.add_argument("--days", type=int, required=True, help="Age threshold in days")

    def handle(self, *args, **options):
        rows = list_overdue_cores(options["days"])
        for row in rows:
            self.stdout.write(
                f"{row.order_number} line={row.line_id} {row.part_number} ${row.core_charge} "
                f"{row.supplier_name} {row.days_outstanding}d since {row.since.isoformat()}"
            )
        self.stdout.write(
            self.style.SUCCESS(f"Overdue cores: {len(rows)}; total outstanding: ${outstanding_core_total()}")
        )
