import threading

import pytest

from backend.services.errors import (
    DuplicatePairError,
    InsufficientStockError,
    NotFoundError,
    StillReferencedError,
)
from backend.services.inventory import (
    adjust_stock_level,
    create_stock_level,
    delete_stock_level,
    get_stock_level,
    ledger_transaction,
    list_stock_levels,
    pair_locks,
    set_stock_level,
)
from backend.services.ledger import create_stock_in


def test_adjust_creates_missing_pair_on_positive_delta(db_session, catalog, quantity_of):
    pair = (catalog.p1.id, catalog.w1.id)
    with ledger_transaction(db_session, pair, action="TEST"):
        assert adjust_stock_level(db_session, *pair, 7) == 7

    assert quantity_of(*pair) == 7


def test_adjust_negative_on_missing_pair_is_insufficient(db_session, catalog, quantity_of):
    pair = (catalog.p1.id, catalog.w1.id)
    with pytest.raises(InsufficientStockError) as exc:
        with ledger_transaction(db_session, pair, action="TEST"):
            adjust_stock_level(db_session, *pair, -1)

    assert exc.value.available == 0
    assert quantity_of(*pair) is None


def test_adjust_never_goes_below_zero(db_session, catalog, quantity_of):
    pair = (catalog.p1.id, catalog.w1.id)
    create_stock_level(db_session, *pair, 3)

    with pytest.raises(InsufficientStockError) as exc:
        with ledger_transaction(db_session, pair, action="TEST"):
            adjust_stock_level(db_session, *pair, -4)

    assert exc.value.available == 3
    assert exc.value.requested == 4
    assert quantity_of(*pair) == 3


def test_adjust_to_exactly_zero_is_allowed(db_session, catalog, quantity_of):
    pair = (catalog.p1.id, catalog.w1.id)
    create_stock_level(db_session, *pair, 3)

    with ledger_transaction(db_session, pair, action="TEST"):
        assert adjust_stock_level(db_session, *pair, -3) == 0

    assert quantity_of(*pair) == 0


def test_get_stock_level_not_found(db_session, catalog):
    with pytest.raises(NotFoundError):
        get_stock_level(db_session, catalog.p1.id, catalog.w1.id)


def test_create_stock_level_duplicate_pair(db_session, catalog):
    create_stock_level(db_session, catalog.p1.id, catalog.w1.id, 5)

    with pytest.raises(DuplicatePairError):
        create_stock_level(db_session, catalog.p1.id, catalog.w1.id, 1)


def test_create_stock_level_unknown_warehouse(db_session, catalog):
    with pytest.raises(NotFoundError) as exc:
        create_stock_level(db_session, catalog.p1.id, "missing-warehouse", 5)
    assert exc.value.entity == "Warehouse"


def test_set_stock_level_clamps_to_zero(db_session, catalog, quantity_of):
    create_stock_level(db_session, catalog.p1.id, catalog.w1.id, 5)

    sl = set_stock_level(db_session, catalog.p1.id, catalog.w1.id, -12)

    assert sl.quantity == 0
    assert quantity_of(catalog.p1.id, catalog.w1.id) == 0


def test_set_stock_level_missing_pair(db_session, catalog):
    with pytest.raises(NotFoundError):
        set_stock_level(db_session, catalog.p1.id, catalog.w1.id, 4)


def test_delete_stock_level_blocked_by_movements(db_session, catalog, stock_in_payload, quantity_of):
    create_stock_in(db_session, stock_in_payload(catalog.p1.id, catalog.w1.id, 5, "GRN-001"))

    with pytest.raises(StillReferencedError) as exc:
        delete_stock_level(db_session, catalog.p1.id, catalog.w1.id)

    assert exc.value.referenced_by == "stock in"
    assert quantity_of(catalog.p1.id, catalog.w1.id) == 5


def test_delete_stock_level_unreferenced(db_session, catalog, quantity_of):
    create_stock_level(db_session, catalog.p1.id, catalog.w2.id, 8)

    delete_stock_level(db_session, catalog.p1.id, catalog.w2.id)

    assert quantity_of(catalog.p1.id, catalog.w2.id) is None


def test_list_stock_levels_filters(db_session, catalog):
    create_stock_level(db_session, catalog.p1.id, catalog.w1.id, 1)
    create_stock_level(db_session, catalog.p1.id, catalog.w2.id, 2)
    create_stock_level(db_session, catalog.p2.id, catalog.w1.id, 3)

    assert len(list_stock_levels(db_session)) == 3
    assert {sl.warehouse_id for sl in list_stock_levels(db_session, product_id=catalog.p1.id)} == {
        catalog.w1.id,
        catalog.w2.id,
    }
    assert [sl.quantity for sl in list_stock_levels(db_session, warehouse_id=catalog.w2.id)] == [2]


def test_pair_locks_opposite_order_does_not_deadlock():
    a, b = ("P", "W1"), ("P", "W2")
    barrier = threading.Barrier(2)
    done = []

    def worker(first, second):
        barrier.wait()
        for _ in range(200):
            with pair_locks(first, second):
                pass
        done.append(first)

    threads = [
        threading.Thread(target=worker, args=(a, b)),
        threading.Thread(target=worker, args=(b, a)),
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert len(done) == 2
