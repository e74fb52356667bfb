from django.core.management.base import BaseCommand
from inventory.replenishment import scan


class Command(BaseCommand):
    help = "Print replenishment alerts, most urgent first. Optionally draft purchase orders from them."

    def add_arguments(self, parser):
        parser.add_argument("--urgency", choices=["critical", "high", "medium", "low"], help="Only this urgency")
        parser.add_argument(
            "--create-orders", action="store_true", help="Create Draft purchase orders grouped by preferred supplier"
        )

    def handle(self, *args, **options):
        alerts = scan()
        if options.get("urgency"):
            alerts = [a for a in alerts if a.urgency == options["urgency"]]
        for a in alerts:
            group = f" [{a.group_code}]" if a.group_code else ""
            self.stdout.write(
                f"{a.urgency:<8} {a.part_number}{group} stock={a.effective_stock} min={a.effective_min} "
                f"order={a.recommended_qty} est=${a.estimated_cost} score={a.stocking_score}"
            )
        self.stdout.write(self.style.SUCCESS(f"Alerts: {len(alerts)}"))

        if options.get("create_orders") and alerts:
            from purchasing.services import create_orders_from_alerts

            orders = create_orders_from_alerts(alerts)
            for order in orders:
                self.stdout.write(f"Drafted {order.order_number} ({order.supplier_name or 'no supplier'})")
