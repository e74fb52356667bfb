"""Selectors for the inventory domain.

Read-only helpers shared by views, batch jobs and the replenishment advisor.
"""

from datetime import timedelta
from django.db.models import QuerySet, Sum
from django.utils import timezone

from .exceptions import PartNotFoundError
from .models import CrossReferenceGroup, InventoryLayer, Part, StockTransaction


def get_part(part_number: str) -> Part:
    try:
        return Part.objects.select_related("xref_group", "storage_location").get(part_number=part_number)
    except Part.DoesNotExist:
        raise PartNotFoundError(part_number)


def layer_stock_for_part(part_id: int) -> int:
    """Sum of remaining quantity across every layer of the part."""

    total = InventoryLayer.objects.filter(part_id=part_id).aggregate(total=Sum("quantity_remaining"))["total"]
    return int(total or 0)


def list_open_layers(part_id: int) -> QuerySet[InventoryLayer]:
    return InventoryLayer.objects.filter(part_id=part_id, quantity_remaining__gt=0).order_by("received_at", "id")


def combined_stock(group: CrossReferenceGroup) -> int:
    """Current stock summed over all members of the group."""

    total = Part.objects.filter(xref_group=group).aggregate(total=Sum("current_stock"))["total"]
    return int(total or 0)


def is_below_minimum(group: CrossReferenceGroup) -> bool:
    return combined_stock(group) <= int(group.min_stock_group)


def usage_count(part_id: int, *, days: int, now=None) -> int:
    """Number of Used transactions for the part in the trailing window."""

    since = (now or timezone.now()) - timedelta(days=days)
    return StockTransaction.objects.filter(
        part_id=part_id,
        transaction_type=StockTransaction.TYPE_USED,
        created_at__gte=since,
    ).count()


# EOF
