"""Min-stock planner: demand-based safety stock.

recommended = ceil(usage per day x (lead time + order cycle) x callback multiplier),
never below 1.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict

from common.choices import Confidence
from django.conf import settings
from django.db import transaction
from django.utils import timezone
from jobs.selectors import count_callback_jobs_for_part
from suppliers.selectors import get_preferred_lead_time_days

from .exceptions import MissingPricingError, NegativeQuantityError, PartNotFoundError
from .models import Part
from .scoring import BatchResult
from .selectors import usage_count

logger = logging.getLogger("fieldparts.inventory")

HIGH_CALLBACK_MULTIPLIER = 1.5
BASE_MULTIPLIER = 1.2
CALLBACK_THRESHOLD = 2


@dataclass
class MinStockRecommendation:
    part_number: str
    value: int
    confidence: str
    reasoning: Dict[str, Any] = field(default_factory=dict)


def _lookback_days() -> int:
    return int(getattr(settings, "INVENTORY_USAGE_LOOKBACK_DAYS", 90))


def _order_cycle_days() -> int:
    return int(getattr(settings, "INVENTORY_ORDER_CYCLE_DAYS", 7))


def _default_lead_time_days() -> int:
    return int(getattr(settings, "INVENTORY_DEFAULT_LEAD_TIME_DAYS", 3))


def confidence_for(data_points: int) -> str:
    if data_points >= 10:
        return Confidence.HIGH
    if data_points >= 3:
        return Confidence.MEDIUM
    return Confidence.LOW


def _lower(confidence: str) -> str:
    if confidence == Confidence.HIGH:
        return Confidence.MEDIUM
    return Confidence.LOW


def recommended_min_stock(part: Part, now=None) -> MinStockRecommendation:
    """Forecast the minimum on-hand quantity that should trigger reordering."""

    now = now or timezone.now()
    window = _lookback_days()
    data_points = usage_count(part.id, days=window, now=now)
    usage_per_month = data_points / window * 30

    pricing_found = True
    try:
        lead_time_days = get_preferred_lead_time_days(part)
    except MissingPricingError:
        pricing_found = False
        lead_time_days = _default_lead_time_days()
        logger.warning(
            "inventory.min_stock_default_lead_time",
            extra={
                "event": "inventory.min_stock_default_lead_time",
                "part_number": part.part_number,
                "lead_time_days": lead_time_days,
            },
        )

    order_cycle_days = _order_cycle_days()
    total_cycle = lead_time_days + order_cycle_days
    expected_usage = usage_per_month / 30 * total_cycle

    callbacks = count_callback_jobs_for_part(part.id, since=now - timedelta(days=window))
    multiplier = HIGH_CALLBACK_MULTIPLIER if callbacks > CALLBACK_THRESHOLD else BASE_MULTIPLIER
    # ceil of float noise such as 2.0000000000000004 must stay 2
    value = max(math.ceil(round(expected_usage * multiplier, 9)), 1)

    confidence = confidence_for(data_points)
    if not pricing_found:
        confidence = _lower(confidence)

    return MinStockRecommendation(
        part_number=part.part_number,
        value=value,
        confidence=str(confidence),
        reasoning={
            "usage_rate": f"{usage_per_month:.1f}/mo",
            "lead_time": f"{lead_time_days}d",
            "lead_time_source": "supplier" if pricing_found else "default",
            "order_cycle": f"{order_cycle_days}d",
            "callback_jobs": callbacks,
            "multiplier": multiplier,
            "data_points": data_points,
        },
    )


@transaction.atomic
def update_part_min_stock(*, part_number: str, min_stock, reason: str = "") -> Part:
    """Manually override the part's minimum stock. ``None`` clears the override."""

    try:
        part = Part.objects.select_for_update().get(part_number=part_number)
    except Part.DoesNotExist:
        raise PartNotFoundError(part_number)
    if min_stock is not None and int(min_stock) < 0:
        raise NegativeQuantityError("Minimum stock must not be negative")
    part.min_stock_override = None if min_stock is None else int(min_stock)
    part.min_stock_override_reason = (reason or "Manually set") if min_stock is not None else ""
    part.save(update_fields=["min_stock_override", "min_stock_override_reason", "updated_at"])
    logger.info(
        "inventory.min_stock_overridden",
        extra={"event": "inventory.min_stock_overridden", "part_number": part_number, "min_stock": min_stock},
    )
    return part


def recalculate_min_stock_levels(now=None) -> BatchResult:
    """Refresh ``min_stock`` for auto-replenish parts without a manual override.

    Only High and Medium confidence forecasts are written; Low confidence
    parts are counted as skipped.
    """

    now = now or timezone.now()
    result = BatchResult()
    qs = Part.objects.filter(auto_replenish=True, min_stock_override__isnull=True).order_by("id")
    for part in qs.iterator():
        try:
            rec = recommended_min_stock(part, now=now)
            if rec.confidence == Confidence.LOW:
                result.skipped += 1
                continue
            Part.objects.filter(id=part.id).update(min_stock=rec.value)
            result.updated += 1
        except Exception as exc:
            result.failures[part.part_number] = str(exc)
            logger.warning(
                "inventory.min_stock_failed",
                extra={"event": "inventory.min_stock_failed", "part_number": part.part_number, "error": str(exc)},
            )
    logger.info(
        "inventory.min_stock_recalculated",
        extra={
            "event": "inventory.min_stock_recalculated",
            "updated": result.updated,
            "skipped": result.skipped,
            "failed": len(result.failures),
        },
    )
    return result


# EOF
