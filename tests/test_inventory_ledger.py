from __future__ import annotations

import threading

import pytest

import storefront.persistence.pg as pg
from storefront.domain.errors import InsufficientStock, ProductNotFound, ValidationFailed
from storefront.domain.inventory.ledger import InventoryLedger, aggregate_quantities


def test_aggregate_quantities_sums_repeated_products():
    assert aggregate_quantities([("a", 2), ("b", 1), ("a", 3)]) == {"a": 5, "b": 1}


def test_decrement_and_increment_move_stock(make_product, stock_of):
    product_id = make_product(stock=10)

    with pg.session_scope() as s:
        InventoryLedger(s).decrement(product_id, 4)
    assert stock_of(product_id) == 6

    with pg.session_scope() as s:
        InventoryLedger(s).increment(product_id, 4)
    assert stock_of(product_id) == 10


def test_decrement_refuses_to_go_negative(make_product, stock_of):
    product_id = make_product(stock=2, name="Linen Shirt")

    with pytest.raises(InsufficientStock) as excinfo:
        with pg.session_scope() as s:
            InventoryLedger(s).decrement(product_id, 3)

    assert excinfo.value.available == 2
    assert excinfo.value.requested == 3
    assert "Linen Shirt" in excinfo.value.reason
    assert stock_of(product_id) == 2


def test_decrement_all_is_all_or_nothing_inside_the_transaction(make_product, stock_of):
    plenty = make_product(stock=10)
    scarce = make_product(stock=1)

    with pytest.raises(InsufficientStock):
        with pg.session_scope() as s:
            InventoryLedger(s).decrement_all({plenty: 3, scarce: 2})

    assert stock_of(plenty) == 10
    assert stock_of(scarce) == 1


def test_unknown_product_and_bad_quantities(session):
    ledger = InventoryLedger(session)
    with pytest.raises(ProductNotFound):
        ledger.decrement("missing-product", 1)
    with pytest.raises(ProductNotFound):
        ledger.increment("missing-product", 1)
    with pytest.raises(ValidationFailed):
        ledger.decrement("missing-product", 0)


def test_concurrent_decrements_never_oversell(make_product, stock_of):
    product_id = make_product(stock=5)
    outcomes: list[str] = []
    lock = threading.Lock()

    def worker():
        try:
            with pg.session_scope() as s:
                InventoryLedger(s).decrement(product_id, 1)
            outcome = "ok"
        except InsufficientStock:
            outcome = "refused"
        with lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    assert len(outcomes) == 8
    assert outcomes.count("ok") == 5
    assert outcomes.count("refused") == 3
    assert stock_of(product_id) == 0
