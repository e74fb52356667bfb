from decimal import Decimal

import pytest
from common.choices import Urgency
from inventory.models import InventoryLayer, StockTransaction
from inventory.replenishment import classify_urgency, scan
from inventory.services import create_group, receive
from inventory.tests.factories import PartFactory


def _stock(part, qty, cost="10.00"):
    receive(part_number=part.part_number, quantity=qty, unit_cost=cost)
    part.refresh_from_db()


@pytest.mark.django_db
def test_out_of_stock_part_is_critical():
    part = PartFactory(min_stock=2, average_cost=Decimal("15.00"))

    alerts = scan()

    assert len(alerts) == 1
    alert = alerts[0]
    assert alert.part_number == part.part_number
    assert alert.urgency == Urgency.CRITICAL
    assert alert.effective_stock == 0
    assert alert.recommended_qty == 3
    assert alert.estimated_cost == Decimal("45.00")


@pytest.mark.django_db
def test_stock_at_minimum_triggers_alert_and_above_does_not():
    at_min = PartFactory(min_stock=2, stocking_score=Decimal("6.00"))
    _stock(at_min, 2)
    above = PartFactory(min_stock=2)
    _stock(above, 3)

    alerts = scan()

    assert [a.part_number for a in alerts] == [at_min.part_number]
    assert alerts[0].urgency == Urgency.MEDIUM
    assert alerts[0].recommended_qty == 1


@pytest.mark.django_db
def test_override_raises_effective_minimum():
    part = PartFactory(min_stock=1, min_stock_override=4)
    _stock(part, 3)

    alerts = scan()

    assert alerts[0].effective_min == 4
    assert alerts[0].recommended_qty == 2


@pytest.mark.django_db
def test_manual_parts_are_ignored():
    PartFactory(auto_replenish=False, min_stock=5)
    assert scan() == []


@pytest.mark.django_db
def test_group_produces_single_alert_for_best_scoring_member():
    a = PartFactory(stocking_score=Decimal("4.00"))
    b = PartFactory(stocking_score=Decimal("8.50"))
    c = PartFactory(stocking_score=Decimal("2.00"), min_stock=10)
    _stock(a, 2)
    _stock(b, 1)
    _stock(c, 2)
    group = create_group(
        part_numbers=[a.part_number, b.part_number, c.part_number], description="x", min_stock_group=5
    )

    alerts = scan()

    assert len(alerts) == 1
    alert = alerts[0]
    assert alert.part_number == b.part_number
    assert alert.group_code == group.group_code
    assert alert.effective_stock == 5
    assert alert.effective_min == 5
    assert alert.recommended_qty == 1
    assert alert.urgency == Urgency.HIGH


@pytest.mark.django_db
def test_group_above_minimum_silences_members():
    a = PartFactory(min_stock=10)
    b = PartFactory(min_stock=10)
    _stock(a, 3)
    _stock(b, 3)
    create_group(part_numbers=[a.part_number, b.part_number], description="pair", min_stock_group=5)

    assert scan() == []


@pytest.mark.django_db
def test_alerts_ordered_by_urgency_then_score():
    low = PartFactory(min_stock=3, stocking_score=Decimal("1.00"))
    _stock(low, 1)
    high = PartFactory(min_stock=3, stocking_score=Decimal("9.00"))
    _stock(high, 1)
    medium = PartFactory(min_stock=3, stocking_score=Decimal("5.00"))
    _stock(medium, 1)
    critical = PartFactory(min_stock=3, stocking_score=Decimal("0.00"))

    alerts = scan()

    assert [a.part_number for a in alerts] == [
        critical.part_number,
        high.part_number,
        medium.part_number,
        low.part_number,
    ]


@pytest.mark.django_db
def test_scan_is_read_only():
    part = PartFactory(min_stock=5)
    _stock(part, 1)
    layers_before = InventoryLayer.objects.count()
    tx_before = StockTransaction.objects.count()

    scan()
    scan()

    part.refresh_from_db()
    assert part.current_stock == 1
    assert InventoryLayer.objects.count() == layers_before
    assert StockTransaction.objects.count() == tx_before


@pytest.mark.parametrize(
    "stock,score,expected",
    [
        (0, Decimal("9.9"), Urgency.CRITICAL),
        (1, Decimal("8.0"), Urgency.HIGH),
        (1, Decimal("7.99"), Urgency.MEDIUM),
        (1, Decimal("5.0"), Urgency.MEDIUM),
        (1, Decimal("4.99"), Urgency.LOW),
    ],
)
def test_classify_urgency(stock, score, expected):
    assert classify_urgency(stock, score) == expected
