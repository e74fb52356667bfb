"""Replenishment advisor: read-only scan producing ranked reorder alerts.

Grouped parts are judged on their group's combined stock and minimum, and a
group yields a single alert naming its highest-scoring member.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from common.choices import Urgency
from django.db.models import Sum

from .exceptions import money
from .models import Part

URGENCY_RANK = {
    Urgency.CRITICAL: 0,
    Urgency.HIGH: 1,
    Urgency.MEDIUM: 2,
    Urgency.LOW: 3,
}


@dataclass
class ReplenishmentAlert:
    part_number: str
    description: str
    group_code: Optional[str]
    effective_stock: int
    effective_min: int
    recommended_qty: int
    estimated_cost: Decimal
    urgency: str
    stocking_score: Decimal


def classify_urgency(effective_stock: int, stocking_score) -> str:
    if effective_stock == 0:
        return Urgency.CRITICAL
    score = Decimal(stocking_score or 0)
    if score >= 8:
        return Urgency.HIGH
    if score >= 5:
        return Urgency.MEDIUM
    return Urgency.LOW


def build_alert(part: Part, effective_stock: int, effective_min: int, group_code=None) -> Optional[ReplenishmentAlert]:
    """Return an alert when stock is at or below the minimum, else None."""

    if effective_stock > effective_min:
        return None
    recommended_qty = max(effective_min - effective_stock + 1, 1)
    return ReplenishmentAlert(
        part_number=part.part_number,
        description=part.description,
        group_code=group_code,
        effective_stock=effective_stock,
        effective_min=effective_min,
        recommended_qty=recommended_qty,
        estimated_cost=money(Decimal(part.average_cost or 0) * recommended_qty),
        urgency=str(classify_urgency(effective_stock, part.stocking_score)),
        stocking_score=Decimal(part.stocking_score or 0),
    )


def scan() -> List[ReplenishmentAlert]:
    """Scan auto-replenish parts and return alerts, most urgent first.

    Never mutates stock; the result feeds purchase order creation.
    """

    parts = list(Part.objects.filter(auto_replenish=True).select_related("xref_group").order_by("part_number"))
    group_ids = {p.xref_group_id for p in parts if p.xref_group_id}
    group_stock = {
        row["xref_group"]: int(row["total"] or 0)
        for row in Part.objects.filter(xref_group_id__in=group_ids)
        .values("xref_group")
        .annotate(total=Sum("current_stock"))
    }

    alerts = []
    seen_groups = set()
    for part in sorted(parts, key=lambda p: (-Decimal(p.stocking_score or 0), p.part_number)):
        group = part.xref_group
        if group is None:
            alert = build_alert(part, int(part.current_stock), part.effective_min_stock)
        else:
            if group.id in seen_groups:
                continue
            seen_groups.add(group.id)
            alert = build_alert(
                part, group_stock.get(group.id, 0), int(group.min_stock_group), group_code=group.group_code
            )
        if alert is not None:
            alerts.append(alert)

    alerts.sort(key=lambda a: (URGENCY_RANK[a.urgency], -a.stocking_score, a.part_number))
    return alerts


# EOF
