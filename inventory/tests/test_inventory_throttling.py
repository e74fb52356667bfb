import pytest
from django.core.cache import cache
from inventory.tests.factories import PartFactory, UserFactory
from rest_framework.test import APIClient


@pytest.fixture
def tight_rates(settings):
    rates = dict(settings.REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"])
    rates.update({"inventory": "2/min", "inventory_write": "1/min"})
    settings.REST_FRAMEWORK = {**settings.REST_FRAMEWORK, "DEFAULT_THROTTLE_RATES": rates}
    cache.clear()
    yield
    cache.clear()


@pytest.mark.django_db
def test_part_reads_are_throttled_per_scope(tight_rates):
    part = PartFactory()
    client = APIClient()
    client.force_authenticate(user=UserFactory())

    assert client.get(f"/api/v1/inventory/parts/{part.part_number}/").status_code == 200
    assert client.get(f"/api/v1/inventory/parts/{part.part_number}/").status_code == 200
    assert client.get(f"/api/v1/inventory/parts/{part.part_number}/").status_code == 429


@pytest.mark.django_db
def test_writes_have_their_own_budget_per_user(tight_rates):
    part = PartFactory()
    first, second = APIClient(), APIClient()
    first.force_authenticate(user=UserFactory())
    second.force_authenticate(user=UserFactory())
    url = f"/api/v1/inventory/parts/{part.part_number}/receive/"
    payload = {"quantity": 1, "unit_cost": "2.00"}

    assert first.post(url, payload, format="json").status_code == 201
    assert first.post(url, payload, format="json").status_code == 429
    assert second.post(url, payload, format="json").status_code == 201
    # reads are unaffected by the write budget
    assert first.get(f"/api/v1/inventory/parts/{part.part_number}/").status_code == 200


@pytest.mark.django_db
def test_health_is_never_throttled(tight_rates):
    client = APIClient()
    for _ in range(5):
        assert client.get("/api/v1/inventory/health/").status_code == 200
