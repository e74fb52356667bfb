import pytest
from common.choices import Confidence
from inventory.exceptions import NegativeQuantityError, PartNotFoundError
from inventory.models import Part
from inventory.planning import (
    confidence_for,
    recalculate_min_stock_levels,
    recommended_min_stock,
    update_part_min_stock,
)
from inventory.services import consume, receive
from inventory.tests.factories import PartFactory
from jobs.tests.factories import JobFactory
from suppliers.tests.factories import SupplierPricingFactory


def _use(part, times, callbacks=0):
    receive(part_number=part.part_number, quantity=times, unit_cost="5.00")
    for i in range(times):
        job = JobFactory(is_callback=i < callbacks)
        consume(part_number=part.part_number, quantity=1, job=job)
    part.refresh_from_db()


@pytest.mark.django_db
def test_no_usage_yields_floor_of_one_with_low_confidence():
    part = PartFactory()
    SupplierPricingFactory(part=part, lead_time_days=5)

    rec = recommended_min_stock(part)

    assert rec.value == 1
    assert rec.confidence == Confidence.LOW
    assert rec.reasoning["data_points"] == 0
    assert rec.reasoning["lead_time_source"] == "supplier"


@pytest.mark.django_db
def test_forecast_uses_supplier_lead_time():
    part = PartFactory()
    SupplierPricingFactory(part=part, lead_time_days=23)
    _use(part, 12)

    rec = recommended_min_stock(part)

    # 4/mo over a 30 day cycle, times 1.2
    assert rec.value == 5
    assert rec.confidence == Confidence.HIGH
    assert rec.reasoning["usage_rate"] == "4.0/mo"
    assert rec.reasoning["lead_time"] == "23d"
    assert rec.reasoning["multiplier"] == 1.2


@pytest.mark.django_db
def test_callback_heavy_part_gets_larger_multiplier():
    part = PartFactory()
    SupplierPricingFactory(part=part, lead_time_days=23)
    _use(part, 12, callbacks=3)

    rec = recommended_min_stock(part)

    assert rec.reasoning["callback_jobs"] == 3
    assert rec.reasoning["multiplier"] == 1.5
    assert rec.value == 6


@pytest.mark.django_db
def test_missing_pricing_falls_back_and_lowers_confidence(settings):
    settings.INVENTORY_DEFAULT_LEAD_TIME_DAYS = 23
    part = PartFactory()
    _use(part, 12)

    rec = recommended_min_stock(part)

    assert rec.value == 5
    assert rec.confidence == Confidence.MEDIUM
    assert rec.reasoning["lead_time_source"] == "default"


@pytest.mark.django_db
def test_shortest_preferred_lead_time_wins():
    part = PartFactory()
    SupplierPricingFactory(part=part, lead_time_days=9)
    SupplierPricingFactory(part=part, lead_time_days=4)
    SupplierPricingFactory(part=part, lead_time_days=1, preferred=False)

    rec = recommended_min_stock(part)

    assert rec.reasoning["lead_time"] == "4d"


@pytest.mark.parametrize("points,expected", [(0, "Low"), (2, "Low"), (3, "Medium"), (9, "Medium"), (10, "High")])
def test_confidence_thresholds(points, expected):
    assert confidence_for(points) == expected


@pytest.mark.django_db
def test_manual_override_and_clear():
    part = PartFactory(min_stock=2)

    update_part_min_stock(part_number=part.part_number, min_stock=6, reason="Summer season")
    part.refresh_from_db()
    assert part.min_stock_override == 6
    assert part.min_stock_override_reason == "Summer season"
    assert part.effective_min_stock == 6

    update_part_min_stock(part_number=part.part_number, min_stock=None)
    part.refresh_from_db()
    assert part.min_stock_override is None
    assert part.min_stock_override_reason == ""
    assert part.effective_min_stock == 2


@pytest.mark.django_db
def test_override_validation():
    part = PartFactory()
    with pytest.raises(NegativeQuantityError):
        update_part_min_stock(part_number=part.part_number, min_stock=-1)
    with pytest.raises(PartNotFoundError):
        update_part_min_stock(part_number="NOPE", min_stock=1)


@pytest.mark.django_db
def test_batch_refresh_skips_low_confidence_and_overrides():
    confident = PartFactory()
    SupplierPricingFactory(part=confident, lead_time_days=23)
    _use(confident, 12)
    sparse = PartFactory(min_stock=3)
    overridden = PartFactory(min_stock=1, min_stock_override=8)
    _use(overridden, 12)
    manual = PartFactory(auto_replenish=False, min_stock=2)
    _use(manual, 12)

    result = recalculate_min_stock_levels()

    assert result.ok
    assert result.updated == 1
    assert result.skipped == 1
    assert Part.objects.get(id=confident.id).min_stock == 5
    assert Part.objects.get(id=sparse.id).min_stock == 3
    assert Part.objects.get(id=overridden.id).min_stock == 1
    assert Part.objects.get(id=manual.id).min_stock == 2
