import threading
from typing import List

import pytest
from django.db import close_old_connections, connection
from inventory.exceptions import InsufficientStockError
from inventory.models import InventoryLayer, StockTransaction
from inventory.services import consume, receive
from inventory.tests.factories import PartFactory


def _consume_worker(barrier: threading.Barrier, part_number: str, qty: int, successes: List[int], errors: List):
    # Each thread gets its own DB connection
    close_old_connections()
    barrier.wait()
    try:
        consume(part_number=part_number, quantity=qty)
        successes.append(qty)
    except InsufficientStockError as exc:
        errors.append(exc)
    finally:
        connection.close()


def _receive_worker(barrier: threading.Barrier, part_number: str, qty: int, successes: List[int]):
    close_old_connections()
    barrier.wait()
    try:
        receive(part_number=part_number, quantity=qty, unit_cost="5.00")
        successes.append(qty)
    finally:
        connection.close()


@pytest.mark.django_db(transaction=True)
def test_competing_consumers_cannot_oversell():
    if connection.vendor == "sqlite":
        pytest.skip("SQLite lacks real concurrent transactions; skipping threaded test.")
    part = PartFactory()
    receive(part_number=part.part_number, quantity=3, unit_cost="10.00")

    barrier = threading.Barrier(2)
    successes: List[int] = []
    errors: List = []
    threads = [
        threading.Thread(target=_consume_worker, args=(barrier, part.part_number, 2, successes, errors))
        for _ in range(2)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    # Exactly one draw fits in stock of 3
    assert successes == [2]
    assert len(errors) == 1
    part.refresh_from_db()
    assert part.current_stock == 1
    assert InventoryLayer.objects.get(part=part).quantity_remaining == 1
    assert StockTransaction.objects.filter(part=part, transaction_type=StockTransaction.TYPE_USED).count() == 1


@pytest.mark.django_db(transaction=True)
def test_concurrent_receipts_all_land():
    if connection.vendor == "sqlite":
        pytest.skip("SQLite lacks real concurrent transactions; skipping threaded test.")
    part = PartFactory()

    barrier = threading.Barrier(4)
    successes: List[int] = []
    threads = [
        threading.Thread(target=_receive_worker, args=(barrier, part.part_number, n, successes)) for n in (1, 2, 3, 4)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(successes) == [1, 2, 3, 4]
    part.refresh_from_db()
    assert part.current_stock == 10
    assert InventoryLayer.objects.filter(part=part).count() == 4
