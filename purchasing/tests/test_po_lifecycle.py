from decimal import Decimal

import pytest
from inventory.exceptions import NegativeQuantityError, PartNotFoundError
from inventory.tests.factories import PartFactory
from jobs.tests.factories import JobFactory
from purchasing import services
from purchasing.exceptions import InvalidTransitionError
from purchasing.models import PurchaseOrder, PurchaseOrderLine, Shipment
from purchasing.services import ALLOWED_TRANSITIONS, can_transition
from purchasing.tests.factories import PurchaseOrderLineFactory, ordered_po
from suppliers.tests.factories import SupplierFactory, SupplierPricingFactory

S = PurchaseOrder


@pytest.mark.django_db
def test_create_assigns_order_number_and_snapshots_supplier():
    supplier = SupplierFactory(name="Marcone")

    order = services.create_purchase_order(supplier=supplier, notes="Weekly")

    assert order.status == S.STATUS_DRAFT
    assert order.order_number == f"PO-{order.id:04d}"
    assert order.supplier_name == "Marcone"


@pytest.mark.django_db
def test_full_lifecycle_happy_path():
    part = PartFactory()
    order = services.create_purchase_order(supplier=SupplierFactory())
    services.add_line(order, part_number=part.part_number, quantity=2, unit_cost="4.00")

    assert services.submit(order).status == S.STATUS_SUBMITTED
    ordered = services.mark_ordered(order)
    assert ordered.status == S.STATUS_ORDERED
    assert ordered.order_date is not None
    shipped = services.mark_shipped(order, tracking_number="1Z999", carrier="UPS")
    assert shipped.status == S.STATUS_SHIPPED
    assert shipped.tracking_number == "1Z999"


@pytest.mark.django_db
def test_submit_requires_lines():
    order = services.create_purchase_order()
    with pytest.raises(InvalidTransitionError):
        services.submit(order)
    order.refresh_from_db()
    assert order.status == S.STATUS_DRAFT


@pytest.mark.django_db
def test_invalid_transitions_leave_status_unchanged():
    part = PartFactory()
    order = services.create_purchase_order()
    services.add_line(order, part_number=part.part_number, quantity=1, unit_cost="1.00")

    with pytest.raises(InvalidTransitionError) as exc:
        services.mark_shipped(order)
    assert exc.value.current == S.STATUS_DRAFT
    assert exc.value.target == S.STATUS_SHIPPED

    with pytest.raises(InvalidTransitionError):
        services.mark_ordered(order)
    order.refresh_from_db()
    assert order.status == S.STATUS_DRAFT


@pytest.mark.django_db
def test_terminal_states_have_no_exits():
    part = PartFactory()
    order = ordered_po((part, 1, "1.00"))
    services.cancel(order)

    for action in (services.submit, services.mark_ordered, services.mark_shipped, services.cancel):
        with pytest.raises(InvalidTransitionError):
            action(order)
    with pytest.raises(InvalidTransitionError):
        services.receive(order, [(order.lines.get().id, 1)])
    order.refresh_from_db()
    assert order.status == S.STATUS_CANCELLED


def test_transition_table_shape():
    assert ALLOWED_TRANSITIONS[S.STATUS_RECEIVED] == set()
    assert ALLOWED_TRANSITIONS[S.STATUS_CANCELLED] == set()
    for status in (S.STATUS_DRAFT, S.STATUS_SUBMITTED, S.STATUS_ORDERED, S.STATUS_SHIPPED):
        assert can_transition(status, S.STATUS_CANCELLED)
    assert not can_transition(S.STATUS_DRAFT, S.STATUS_RECEIVED)
    assert can_transition(S.STATUS_ORDERED, S.STATUS_RECEIVED)


@pytest.mark.django_db
def test_lines_only_editable_in_draft():
    part = PartFactory()
    order = ordered_po((part, 1, "1.00"))
    with pytest.raises(InvalidTransitionError):
        services.add_line(order, part_number=part.part_number, quantity=1, unit_cost="1.00")
    with pytest.raises(InvalidTransitionError):
        services.remove_line(order, order.lines.get().id)


@pytest.mark.django_db
def test_add_line_numbers_and_defaults_cost_from_pricing():
    part = PartFactory(average_cost=Decimal("9.00"))
    SupplierPricingFactory(part=part, unit_price=Decimal("7.25"))
    job = JobFactory()
    order = services.create_purchase_order()

    first = services.add_line(order, part_number=part.part_number, quantity=2, job=job)
    second = services.add_line(order, part_number=part.part_number, quantity=1, unit_cost="8.00", core_charge="25")

    assert (first.line_number, second.line_number) == (1, 2)
    assert first.unit_cost == Decimal("7.25")
    assert first.description == part.description
    assert first.job_id == job.id
    assert second.has_core
    assert second.core_charge == Decimal("25.00")


@pytest.mark.django_db
def test_add_line_falls_back_to_average_cost_then_zero():
    costed = PartFactory(average_cost=Decimal("9.00"))
    fresh = PartFactory()
    order = services.create_purchase_order()

    assert services.add_line(order, part_number=costed.part_number, quantity=1).unit_cost == Decimal("9.00")
    assert services.add_line(order, part_number=fresh.part_number, quantity=1).unit_cost == Decimal("0.00")


@pytest.mark.django_db
def test_add_line_validation():
    part = PartFactory()
    order = services.create_purchase_order()
    with pytest.raises(NegativeQuantityError):
        services.add_line(order, part_number=part.part_number, quantity=0, unit_cost="1.00")
    with pytest.raises(NegativeQuantityError):
        services.add_line(order, part_number=part.part_number, quantity=1, unit_cost="-1.00")
    with pytest.raises(PartNotFoundError):
        services.add_line(order, part_number="NOPE", quantity=1, unit_cost="1.00")


@pytest.mark.django_db
def test_remove_line():
    part = PartFactory()
    order = services.create_purchase_order()
    line = services.add_line(order, part_number=part.part_number, quantity=1, unit_cost="1.00")

    services.remove_line(order, line.id)

    assert not order.lines.exists()
    with pytest.raises(PurchaseOrderLine.DoesNotExist):
        services.remove_line(order, line.id)


@pytest.mark.django_db
def test_totals_are_computed_from_lines_and_charges():
    a, b = PartFactory(), PartFactory()
    order = services.create_purchase_order()
    services.add_line(order, part_number=a.part_number, quantity=3, unit_cost="12.50")
    services.add_line(order, part_number=b.part_number, quantity=1, unit_cost="4.99")

    order = services.update_charges(order, shipping_cost="9.95", tax="3.10")

    assert order.subtotal == Decimal("42.49")
    assert order.total == Decimal("55.54")


@pytest.mark.django_db
def test_charges_rejected_on_terminal_orders_and_negative_values():
    order = services.create_purchase_order()
    with pytest.raises(NegativeQuantityError):
        services.update_charges(order, shipping_cost="-1")
    services.cancel(order)
    with pytest.raises(InvalidTransitionError):
        services.update_charges(order, tax="1.00")


@pytest.mark.django_db
def test_ship_records_shipment_and_reuses_tracking_number():
    part = PartFactory()
    first = ordered_po((part, 1, "1.00"))
    second = ordered_po((part, 1, "1.00"))

    services.mark_shipped(first, tracking_number="1ZSAME", carrier="UPS", tracking_url="https://ups.example/1ZSAME")
    services.mark_shipped(second, tracking_number="1ZSAME", carrier="UPS")

    shipment = Shipment.objects.get()
    assert shipment.shipment_code == f"SHP-{shipment.id:04d}"
    assert set(shipment.orders.values_list("id", flat=True)) == {first.id, second.id}


@pytest.mark.django_db
def test_line_factory_builds_consistent_line():
    line = PurchaseOrderLineFactory(quantity=4, unit_cost=Decimal("2.50"))
    assert line.line_total == Decimal("10.00")
    assert line.quantity_remaining == 4
    assert not line.is_fully_received


@pytest.mark.django_db
def test_update_line_edits_draft_lines():
    part = PartFactory()
    order = services.create_purchase_order()
    line = services.add_line(order, part_number=part.part_number, quantity=2, unit_cost="4.00")

    line = services.update_line(order, line.id, quantity=5, unit_cost="3.50", core_charge="20")

    line.refresh_from_db()
    assert (line.quantity, line.unit_cost) == (5, Decimal("3.50"))
    assert line.has_core
    assert line.core_charge == Decimal("20.00")
    assert line.line_total == Decimal("17.50")


@pytest.mark.django_db
def test_update_line_rules():
    part = PartFactory()
    order = services.create_purchase_order()
    line = services.add_line(order, part_number=part.part_number, quantity=2, unit_cost="4.00")

    with pytest.raises(NegativeQuantityError):
        services.update_line(order, line.id, quantity=0)
    with pytest.raises(NegativeQuantityError):
        services.update_line(order, line.id, unit_cost="-1")
    with pytest.raises(PurchaseOrderLine.DoesNotExist):
        services.update_line(order, line.id + 999, quantity=1)

    services.submit(order)
    with pytest.raises(InvalidTransitionError) as exc:
        services.update_line(order, line.id, quantity=3)
    assert str(exc.value) == "Cannot edit lines: order is submitted"
    line.refresh_from_db()
    assert line.quantity == 2


@pytest.mark.django_db
def test_delete_order_only_in_draft():
    part = PartFactory()
    draft = services.create_purchase_order()
    services.add_line(draft, part_number=part.part_number, quantity=1, unit_cost="1.00")

    services.delete_order(draft)

    assert not PurchaseOrder.objects.filter(id=draft.id).exists()
    assert not PurchaseOrderLine.objects.exists()

    placed = ordered_po((part, 1, "1.00"))
    with pytest.raises(InvalidTransitionError):
        services.delete_order(placed)
    assert PurchaseOrder.objects.filter(id=placed.id).exists()
