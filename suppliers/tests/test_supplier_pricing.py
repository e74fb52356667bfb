from decimal import Decimal

import pytest
from inventory.exceptions import MissingPricingError
from inventory.tests.factories import PartFactory
from suppliers.selectors import get_preferred_lead_time_days, get_preferred_pricing
from suppliers.tests.factories import SupplierFactory, SupplierPricingFactory


@pytest.mark.django_db
def test_cheapest_active_preferred_pricing_wins():
    part = PartFactory()
    SupplierPricingFactory(part=part, unit_price=Decimal("12.00"))
    cheap = SupplierPricingFactory(part=part, unit_price=Decimal("9.00"))
    SupplierPricingFactory(part=part, unit_price=Decimal("5.00"), preferred=False)
    SupplierPricingFactory(part=part, unit_price=Decimal("4.00"), active=False)
    SupplierPricingFactory(part=part, unit_price=Decimal("3.00"), supplier=SupplierFactory(active=False))

    assert get_preferred_pricing(part).id == cheap.id


@pytest.mark.django_db
def test_no_pricing_returns_none_and_lead_time_raises():
    part = PartFactory()

    assert get_preferred_pricing(part) is None
    with pytest.raises(MissingPricingError):
        get_preferred_lead_time_days(part)


@pytest.mark.django_db
def test_pricing_without_lead_time_is_missing():
    part = PartFactory()
    SupplierPricingFactory(part=part, lead_time_days=None)

    with pytest.raises(MissingPricingError):
        get_preferred_lead_time_days(part)
