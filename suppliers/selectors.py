"""Selectors for supplier pricing."""

from typing import Optional

from inventory.exceptions import MissingPricingError

from .models import SupplierPricing


def active_preferred_pricing(part_id: int):
    return SupplierPricing.objects.filter(
        part_id=part_id, preferred=True, active=True, supplier__active=True
    ).select_related("supplier", "part")


def get_preferred_lead_time_days(part) -> int:
    """Return the shortest lead time among active preferred pricing records.

    Raises MissingPricingError when the part has no such record with a lead time.
    """

    pricing = (
        active_preferred_pricing(part.id).filter(lead_time_days__isnull=False).order_by("lead_time_days").first()
    )
    if pricing is None:
        raise MissingPricingError(part.part_number)
    return int(pricing.lead_time_days)


def get_preferred_pricing(part) -> Optional[SupplierPricing]:
    """Return the cheapest active preferred pricing record, or None."""

    return active_preferred_pricing(part.id).order_by("unit_price", "lead_time_days").first()
