"""Read-only queries for purchasing: open orders and the core charge report."""

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import List, Optional

from django.db.models import Q, QuerySet, Sum
from django.utils import timezone
from inventory.exceptions import NegativeQuantityError, money

from .models import PurchaseOrder, PurchaseOrderLine


@dataclass
class OverdueCore:
    line_id: int
    order_number: str
    supplier_name: str
    part_number: str
    core_charge: Decimal
    since: date
    days_outstanding: int


def outstanding_cores() -> QuerySet[PurchaseOrderLine]:
    return (
        PurchaseOrderLine.objects.filter(has_core=True, core_returned=False, core_charge__isnull=False)
        .exclude(order__status=PurchaseOrder.STATUS_CANCELLED)
        .select_related("order", "part")
    )


def list_overdue_cores(older_than_days: int, today: Optional[date] = None) -> List[OverdueCore]:
    """Unreturned cores whose order was delivered (or placed) over ``older_than_days`` ago.

    Advisory only: nothing blocks on an overdue core. Lines whose order has
    neither a delivery nor an order date are not yet aging.
    """

    if older_than_days is None or int(older_than_days) < 0:
        raise NegativeQuantityError("older_than_days must be zero or more")
    today = today or timezone.localdate()
    cutoff = today - timedelta(days=int(older_than_days))
    qs = (
        outstanding_cores()
        .filter(
            Q(order__actual_delivery__isnull=False, order__actual_delivery__lt=cutoff)
            | Q(order__actual_delivery__isnull=True, order__order_date__lt=cutoff)
        )
        .order_by("order__order_date", "order_id", "line_number")
    )
    report = []
    for line in qs:
        since = line.order.actual_delivery or line.order.order_date
        report.append(
            OverdueCore(
                line_id=line.id,
                order_number=line.order.order_number,
                supplier_name=line.order.supplier_name,
                part_number=line.part.part_number,
                core_charge=line.core_charge,
                since=since,
                days_outstanding=(today - since).days,
            )
        )
    report.sort(key=lambda row: (-row.days_outstanding, row.order_number, row.line_id))
    return report


def outstanding_core_total() -> Decimal:
    """Sum of core charges still owed to suppliers."""

    total = outstanding_cores().aggregate(total=Sum("core_charge"))["total"]
    return money(total)


# EOF
