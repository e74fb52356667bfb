from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone
from inventory.tests.factories import PartFactory, UserFactory
from purchasing import services
from purchasing.models import IdempotencyKey, PurchaseOrder
from purchasing.tests.factories import ordered_po
from rest_framework.test import APIClient
from suppliers.tests.factories import SupplierFactory, SupplierPricingFactory

BASE = "/api/v1/purchasing"


@pytest.fixture
def client():
    client = APIClient()
    client.force_authenticate(user=UserFactory())
    return client


@pytest.mark.django_db
def test_create_order_add_lines_and_walk_lifecycle(client):
    supplier = SupplierFactory()
    part = PartFactory()

    r = client.post(f"{BASE}/orders/", {"supplier": supplier.supplier_code, "notes": "restock"}, format="json")
    assert r.status_code == 201
    order = r.json()
    assert order["status"] == "draft"
    assert order["order_number"].startswith("PO-")

    r = client.post(
        f"{BASE}/orders/{order['id']}/lines/",
        {"part_number": part.part_number, "quantity": 3, "unit_cost": "12.50"},
        format="json",
    )
    assert r.status_code == 201
    assert r.json()["line_total"] == "37.50"

    r = client.patch(f"{BASE}/orders/{order['id']}/charges/", {"shipping_cost": "5.00", "tax": "2.50"}, format="json")
    assert r.status_code == 200
    assert r.json()["total"] == "45.00"

    assert client.post(f"{BASE}/orders/{order['id']}/submit/").json()["status"] == "submitted"
    assert client.post(f"{BASE}/orders/{order['id']}/order/").json()["status"] == "ordered"
    r = client.post(f"{BASE}/orders/{order['id']}/ship/", {"tracking_number": "1Z1", "carrier": "UPS"}, format="json")
    assert r.status_code == 200
    assert r.json()["status"] == "shipped"

    shipments = client.get(f"{BASE}/shipments/").json()["results"]
    assert shipments[0]["orders"] == [order["order_number"]]


@pytest.mark.django_db
def test_invalid_transition_is_conflict(client):
    order = services.create_purchase_order()

    r = client.post(f"{BASE}/orders/{order.id}/ship/", {}, format="json")

    assert r.status_code == 409
    order.refresh_from_db()
    assert order.status == PurchaseOrder.STATUS_DRAFT


@pytest.mark.django_db
def test_missing_order_is_404(client):
    assert client.get(f"{BASE}/orders/999999/").status_code == 404
    assert client.post(f"{BASE}/orders/999999/submit/").status_code == 404


@pytest.mark.django_db
def test_anonymous_cannot_write():
    anon = APIClient()
    r = anon.post(f"{BASE}/orders/", {"notes": "x"}, format="json")
    assert r.status_code in (401, 403)
    assert anon.get(f"{BASE}/orders/").status_code == 200


@pytest.mark.django_db
def test_receive_endpoint_partial_and_over_receipt(client):
    part = PartFactory()
    order = ordered_po((part, 5, "3.00"))
    line = order.lines.get()
    url = f"{BASE}/orders/{order.id}/receive/"

    r = client.post(url, {"deliveries": [{"line_id": line.id, "quantity": 2}]}, format="json")
    assert r.status_code == 200
    assert r.json()["status"] == "partially_received"

    r = client.post(url, {"deliveries": [{"line_id": line.id, "quantity": 4}]}, format="json")
    assert r.status_code == 409
    part.refresh_from_db()
    assert part.current_stock == 2

    r = client.post(url, {"deliveries": [{"line_id": line.id + 999, "quantity": 1}]}, format="json")
    assert r.status_code == 404

    r = client.post(url, {"deliveries": []}, format="json")
    assert r.status_code == 400


@pytest.mark.django_db
def test_receive_is_idempotent_with_key(client):
    part = PartFactory()
    order = ordered_po((part, 5, "3.00"))
    line = order.lines.get()
    url = f"{BASE}/orders/{order.id}/receive/"
    payload = {"deliveries": [{"line_id": line.id, "quantity": 2}]}

    r1 = client.post(url, payload, format="json", HTTP_IDEMPOTENCY_KEY="recv-1")
    r2 = client.post(url, payload, format="json", HTTP_IDEMPOTENCY_KEY="recv-1")

    assert r1.status_code == r2.status_code == 200
    assert r1.json() == r2.json()
    part.refresh_from_db()
    assert part.current_stock == 2

    r3 = client.post(
        url, {"deliveries": [{"line_id": line.id, "quantity": 1}]}, format="json", HTTP_IDEMPOTENCY_KEY="recv-1"
    )
    assert r3.status_code == 409
    assert "different request payload" in r3.json()["detail"]


@pytest.mark.django_db
def test_transition_is_idempotent_with_key(client):
    part = PartFactory()
    order = services.create_purchase_order()
    services.add_line(order, part_number=part.part_number, quantity=1, unit_cost="1.00")

    r1 = client.post(f"{BASE}/orders/{order.id}/submit/", HTTP_IDEMPOTENCY_KEY="submit-1")
    r2 = client.post(f"{BASE}/orders/{order.id}/submit/", HTTP_IDEMPOTENCY_KEY="submit-1")

    assert r1.status_code == 200
    assert r2.status_code == 200
    assert r2.json()["status"] == "submitted"
    # without the key the repeat is a real second submit
    assert client.post(f"{BASE}/orders/{order.id}/submit/").status_code == 409


@pytest.mark.django_db
def test_lines_endpoint_guards(client):
    part = PartFactory()
    order = services.create_purchase_order()
    line = services.add_line(order, part_number=part.part_number, quantity=1, unit_cost="1.00")

    r = client.post(f"{BASE}/orders/{order.id}/lines/", {"part_number": "NOPE", "quantity": 1}, format="json")
    assert r.status_code == 404
    assert client.delete(f"{BASE}/orders/{order.id}/lines/{line.id + 999}/").status_code == 404
    r = client.delete(f"{BASE}/orders/{order.id}/lines/{line.id}/")
    assert r.status_code == 200
    assert r.json()["lines"] == []


@pytest.mark.django_db
def test_core_return_and_overdue_report(client):
    part = PartFactory()
    order = ordered_po({"part": part, "quantity": 1, "unit_cost": "80.00", "core_charge": "35.00"})
    line = order.lines.get()
    PurchaseOrder.objects.filter(id=order.id).update(order_date=timezone.localdate() - timedelta(days=40))

    r = client.get(f"{BASE}/cores/overdue/?days=30")
    assert r.status_code == 200
    body = r.json()
    assert body["count"] == 1
    assert body["outstanding_total"] == "35.00"
    assert body["results"][0]["part_number"] == part.part_number

    assert client.get(f"{BASE}/cores/overdue/").status_code == 400
    assert client.get(f"{BASE}/cores/overdue/?days=-2").status_code == 400

    r = client.post(f"{BASE}/lines/{line.id}/core-return/", {"tracking": "1ZRET"}, format="json")
    assert r.status_code == 200
    assert r.json()["core_credit_amount"] == "35.00"

    assert client.post(f"{BASE}/lines/{line.id}/core-return/", {}, format="json").status_code == 409
    assert client.post(f"{BASE}/lines/999999/core-return/", {}, format="json").status_code == 404
    assert client.get(f"{BASE}/cores/overdue/?days=30").json()["count"] == 0


@pytest.mark.django_db
def test_orders_from_alerts_endpoint(client):
    pricing = SupplierPricingFactory(part=PartFactory(min_stock=1), unit_price=Decimal("6.00"))

    r = client.post(f"{BASE}/orders/from-alerts/", {}, format="json")

    assert r.status_code == 201
    orders = r.json()
    assert len(orders) == 1
    assert orders[0]["supplier_code"] == pricing.supplier.supplier_code
    assert orders[0]["lines"][0]["quantity"] == 2
    assert orders[0]["lines"][0]["unit_cost"] == "6.00"


@pytest.mark.django_db
def test_list_filters(client):
    part = PartFactory()
    ordered_po((part, 1, "1.00"))
    services.create_purchase_order()

    r = client.get(f"{BASE}/orders/?status=ordered")
    assert r.json()["count"] == 1
    r = client.get(f"{BASE}/orders/?part={part.part_number}")
    assert r.json()["count"] == 1


@pytest.mark.django_db
def test_cleanup_idempotency_command():
    from io import StringIO

    from django.core.management import call_command

    IdempotencyKey.objects.create(
        key="old", scope="anon", path="/x/", method="POST", expires_at=timezone.now() - timedelta(hours=1)
    )
    IdempotencyKey.objects.create(
        key="new", scope="anon", path="/x/", method="POST", expires_at=timezone.now() + timedelta(hours=1)
    )
    out = StringIO()

    call_command("cleanup_idempotency", stdout=out)

    assert "Deleted 1 expired idempotency keys." in out.getvalue()
    assert list(IdempotencyKey.objects.values_list("key", flat=True)) == ["new"]


@pytest.mark.django_db
def test_patch_line_and_delete_draft_order(client):
    part = PartFactory()
    order = services.create_purchase_order()
    line = services.add_line(order, part_number=part.part_number, quantity=2, unit_cost="4.00")

    r = client.patch(f"{BASE}/orders/{order.id}/lines/{line.id}/", {"quantity": 6}, format="json")
    assert r.status_code == 200
    assert r.json()["quantity"] == 6
    assert r.json()["line_total"] == "24.00"

    assert client.patch(f"{BASE}/orders/{order.id}/lines/999999/", {"quantity": 1}, format="json").status_code == 404
    assert APIClient().delete(f"{BASE}/orders/{order.id}/").status_code in (401, 403)

    r = client.delete(f"{BASE}/orders/{order.id}/")
    assert r.status_code == 204
    assert not PurchaseOrder.objects.filter(id=order.id).exists()


@pytest.mark.django_db
def test_line_edit_and_delete_conflict_after_submit(client):
    part = PartFactory()
    order = ordered_po((part, 1, "1.00"))
    line = order.lines.get()

    r = client.patch(f"{BASE}/orders/{order.id}/lines/{line.id}/", {"quantity": 3}, format="json")
    assert r.status_code == 409
    assert r.json()["detail"] == "Cannot edit lines: order is ordered"
    assert client.delete(f"{BASE}/orders/{order.id}/").status_code == 409
