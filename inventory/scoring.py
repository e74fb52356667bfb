"""Stocking score engine.

Scores how worth it a part is to keep on the truck, on a 0-10 scale made of
four independently capped components:

- frequency (0-4): uses per month since the part was first used
- recency (0-2): days since the part was last used
- callback impact (0-3): half a point per callback job that needed the part
- cost efficiency (0-1): cheap parts are easier to justify stocking
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, Optional

from django.conf import settings
from django.utils import timezone
from jobs.selectors import count_callback_jobs_for_part

from .models import Part

logger = logging.getLogger("fieldparts.inventory")

MAX_SCORE = Decimal("10")
LOW_COST_THRESHOLD = Decimal("50")

RECOMMENDATIONS = (
    (Decimal("9"), "Critical — stock immediately"),
    (Decimal("7"), "High value — stock soon"),
    (Decimal("5"), "Moderate — consider stocking"),
    (Decimal("3"), "Low priority — order as needed"),
)
DEFAULT_RECOMMENDATION = "Rarely used — don't stock"


@dataclass
class StockingScore:
    part_number: str
    frequency: Decimal
    recency: Decimal
    callback_impact: Decimal
    cost: Decimal
    callback_jobs: int = 0

    @property
    def value(self) -> Decimal:
        total = self.frequency + self.recency + self.callback_impact + self.cost
        return min(max(total, Decimal("0")), MAX_SCORE).quantize(Decimal("0.01"))

    @property
    def recommendation(self) -> str:
        return recommendation_for(self.value)

    @property
    def breakdown(self) -> Dict[str, Decimal]:
        return {
            "frequency": self.frequency,
            "recency": self.recency,
            "callback_impact": self.callback_impact,
            "cost": self.cost,
        }


@dataclass
class BatchResult:
    """Outcome of a batch recalculation; failures are keyed by part number."""

    updated: int = 0
    skipped: int = 0
    failures: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures


def recommendation_for(score: Decimal) -> str:
    for threshold, label in RECOMMENDATIONS:
        if score >= threshold:
            return label
    return DEFAULT_RECOMMENDATION


def frequency_points(times_used: int, first_used_at, now) -> Decimal:
    if not times_used or first_used_at is None:
        return Decimal("0")
    days = max((now - first_used_at).total_seconds() / 86400, 1)
    per_month = times_used / days * 30
    if per_month >= 4:
        return Decimal("4")
    if per_month >= 2:
        return Decimal("3")
    if per_month >= 1:
        return Decimal("2")
    if per_month >= 0.5:
        return Decimal("1")
    return Decimal("0")


def recency_points(last_used_at, now) -> Decimal:
    if last_used_at is None:
        return Decimal("0")
    days = (now - last_used_at).total_seconds() / 86400
    if days < 7:
        return Decimal("2")
    if days < 30:
        return Decimal("1.5")
    if days < 90:
        return Decimal("1")
    return Decimal("0")


def callback_points(callback_jobs: int) -> Decimal:
    return min(Decimal(int(callback_jobs)) / 2, Decimal("3"))


def cost_points(average_cost) -> Decimal:
    threshold = Decimal(str(getattr(settings, "INVENTORY_LOW_COST_THRESHOLD", LOW_COST_THRESHOLD)))
    return Decimal("1") if Decimal(average_cost or 0) < threshold else Decimal("0.5")


def calculate_stocking_score(part: Part, now=None) -> StockingScore:
    """Score a part deterministically from its usage history."""

    now = now or timezone.now()
    callback_jobs = count_callback_jobs_for_part(part.id)
    return StockingScore(
        part_number=part.part_number,
        frequency=frequency_points(int(part.times_used), part.first_used_at, now),
        recency=recency_points(part.last_used_at, now),
        callback_impact=callback_points(callback_jobs),
        cost=cost_points(part.average_cost),
        callback_jobs=callback_jobs,
    )


def recalculate_stocking_scores(part_numbers: Optional[Iterable[str]] = None, now=None) -> BatchResult:
    """Recompute and persist stocking scores.

    Each part is written with a single-column UPDATE without row locks, so a
    run never blocks ledger writers. A failure on one part is recorded and the
    batch carries on.
    """

    now = now or timezone.now()
    qs = Part.objects.all().order_by("id")
    if part_numbers is not None:
        qs = qs.filter(part_number__in=list(part_numbers))

    result = BatchResult()
    for part in qs.iterator():
        try:
            score = calculate_stocking_score(part, now=now)
            Part.objects.filter(id=part.id).update(stocking_score=score.value)
            result.updated += 1
        except Exception as exc:
            result.failures[part.part_number] = str(exc)
            logger.warning(
                "inventory.score_failed",
                extra={"event": "inventory.score_failed", "part_number": part.part_number, "error": str(exc)},
            )
    logger.info(
        "inventory.scores_recalculated",
        extra={"event": "inventory.scores_recalculated", "updated": result.updated, "failed": len(result.failures)},
    )
    return result


# EOF
