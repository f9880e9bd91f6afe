import threading

import pytest

from backend.app.db.session import SessionLocal
from backend.services import ledger
from backend.services.errors import DuplicateReferenceError, InsufficientStockError, NotFoundError
from backend.services.ledger import (
    create_stock_in,
    create_stock_out,
    delete_stock_in,
    get_stock_in,
    list_stock_in,
    update_stock_in,
)


def _race(n, target):
    """Lance ``n`` appels de ``target(i, session)`` en parallèle ; retourne (résultats, erreurs)."""
    barrier = threading.Barrier(n)
    results, errors = [], []
    lock = threading.Lock()

    def run(i):
        session = SessionLocal()
        try:
            barrier.wait()
            out = target(i, session)
            with lock:
                results.append(out)
        except Exception as exc:  # collecté puis vérifié par le test
            with lock:
                errors.append(exc)
        finally:
            session.close()

    threads = [threading.Thread(target=run, args=(i,)) for i in range(n)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    return results, errors


def test_concurrent_outbound_cannot_overdraw(db_session, catalog, stock_in_payload, stock_out_payload, quantity_of):
    p, w = catalog.p1.id, catalog.w1.id
    create_stock_in(db_session, stock_in_payload(p, w, 10, "GRN-001"))

    results, errors = _race(
        2,
        lambda i, s: create_stock_out(s, stock_out_payload(p, w, 6, f"DO-{i}")),
    )

    assert len(results) == 1
    assert len(errors) == 1
    assert isinstance(errors[0], InsufficientStockError)
    assert quantity_of(p, w) == 4


def test_many_concurrent_outbound_settle_exactly(
    db_session, catalog, stock_in_payload, stock_out_payload, quantity_of, journal_balance
):
    p, w = catalog.p1.id, catalog.w1.id
    create_stock_in(db_session, stock_in_payload(p, w, 10, "GRN-001"))

    results, errors = _race(
        8,
        lambda i, s: create_stock_out(s, stock_out_payload(p, w, 3, f"DO-{i}")),
    )

    assert len(results) == 3
    assert all(isinstance(e, InsufficientStockError) for e in errors)
    assert quantity_of(p, w) == 1
    assert journal_balance(p, w) == 1


def test_concurrent_duplicate_reference(db_session, catalog, stock_in_payload, quantity_of):
    p, w = catalog.p1.id, catalog.w1.id

    results, errors = _race(
        2,
        lambda i, s: create_stock_in(s, stock_in_payload(p, w, 5, "GRN-RACE")),
    )

    assert len(results) == 1
    assert len(errors) == 1
    assert isinstance(errors[0], DuplicateReferenceError)
    assert len(list_stock_in(db_session)) == 1
    assert quantity_of(p, w) == 5


def test_move_between_pairs_has_no_visible_intermediate_state(
    db_session, catalog, stock_in_payload, quantity_of, monkeypatch
):
    p = catalog.p1.id
    w1, w2 = catalog.w1.id, catalog.w2.id
    mv = create_stock_in(db_session, stock_in_payload(p, w1, 5, "GRN-001"))
    create_stock_in(db_session, stock_in_payload(p, w2, 2, "GRN-002"))

    observed = []
    real_adjust = ledger.adjust_stock_level

    def spying_adjust(db, product_id, warehouse_id, delta):
        new_qty = real_adjust(db, product_id, warehouse_id, delta)
        # lecture depuis une autre connexion, au milieu de l'update
        observed.append((quantity_of(p, w1), quantity_of(p, w2)))
        return new_qty

    monkeypatch.setattr(ledger, "adjust_stock_level", spying_adjust)

    update_stock_in(db_session, mv.id, stock_in_payload(p, w2, 5, "GRN-001"))

    assert observed == [(5, 2), (5, 2)]
    assert (quantity_of(p, w1), quantity_of(p, w2)) == (0, 7)


def test_move_between_pairs_rolls_back_on_failure(db_session, catalog, stock_in_payload, quantity_of, monkeypatch):
    p = catalog.p1.id
    w1, w2 = catalog.w1.id, catalog.w2.id
    mv = create_stock_in(db_session, stock_in_payload(p, w1, 5, "GRN-001"))

    real_adjust = ledger.adjust_stock_level
    calls = []

    def crash_after_reversal(db, product_id, warehouse_id, delta):
        calls.append(delta)
        if len(calls) == 2:
            raise RuntimeError("storage failure")
        return real_adjust(db, product_id, warehouse_id, delta)

    monkeypatch.setattr(ledger, "adjust_stock_level", crash_after_reversal)

    with pytest.raises(RuntimeError):
        update_stock_in(db_session, mv.id, stock_in_payload(p, w2, 5, "GRN-001"))

    assert calls == [-5, 5]
    assert quantity_of(p, w1) == 5
    assert quantity_of(p, w2) is None


def _all_pairs(catalog):
    return [(p.id, w.id) for p in (catalog.p1, catalog.p2) for w in (catalog.w1, catalog.w2)]


def _assert_ledger_consistent(catalog, quantity_of, journal_balance):
    for pair in _all_pairs(catalog):
        assert (quantity_of(*pair) or 0) == journal_balance(*pair), pair


@pytest.fixture
def moved_before_lock(monkeypatch, stock_in_payload):
    """
    Fait déplacer le mouvement vers (p2, W1) par une autre session juste après
    la première lecture non verrouillée de ``db`` ; retourne la liste des paires lues.
    """

    def _install(db, target):
        real_get = ledger._get_movement
        reads = []

        def get_then_move(session, model, movement_id, label, *, for_update=False):
            found = real_get(session, model, movement_id, label, for_update=for_update)
            if session is db and not for_update:
                reads.append((found.product_id, found.warehouse_id))
                if len(reads) == 1:
                    with SessionLocal() as other:
                        update_stock_in(other, movement_id, stock_in_payload(*target, found.quantity, found.reference_code))
            return found

        monkeypatch.setattr(ledger, "_get_movement", get_then_move)
        return reads

    return _install


def test_update_relocks_when_movement_moved_before_lock(
    db_session, catalog, stock_in_payload, quantity_of, journal_balance, moved_before_lock
):
    p1, p2 = catalog.p1.id, catalog.p2.id
    w1, w2 = catalog.w1.id, catalog.w2.id
    mv = create_stock_in(db_session, stock_in_payload(p1, w1, 5, "GRN-001"))
    reads = moved_before_lock(db_session, (p2, w1))

    updated = update_stock_in(db_session, mv.id, stock_in_payload(p1, w2, 5, "GRN-001"))

    # première tentative sur (p1, W1) abandonnée, seconde sur (p2, W1)
    assert reads == [(p1, w1), (p2, w1)]
    assert (updated.product_id, updated.warehouse_id) == (p1, w2)
    assert quantity_of(p1, w1) == 0
    assert quantity_of(p2, w1) == 0
    assert quantity_of(p1, w2) == 5
    _assert_ledger_consistent(catalog, quantity_of, journal_balance)


def test_delete_relocks_when_movement_moved_before_lock(
    db_session, catalog, stock_in_payload, quantity_of, journal_balance, moved_before_lock
):
    p1, p2 = catalog.p1.id, catalog.p2.id
    w1 = catalog.w1.id
    mv = create_stock_in(db_session, stock_in_payload(p1, w1, 5, "GRN-001"))
    reads = moved_before_lock(db_session, (p2, w1))

    assert delete_stock_in(db_session, mv.id) == mv.id

    assert reads == [(p1, w1), (p2, w1)]
    assert quantity_of(p1, w1) == 0
    assert quantity_of(p2, w1) == 0
    with pytest.raises(NotFoundError):
        get_stock_in(db_session, mv.id)
    _assert_ledger_consistent(catalog, quantity_of, journal_balance)


@pytest.mark.parametrize("round_no", range(5))
def test_concurrent_moves_and_delete_keep_ledger_consistent(
    round_no, db_session, catalog, stock_in_payload, quantity_of, journal_balance
):
    p1, p2 = catalog.p1.id, catalog.p2.id
    w1, w2 = catalog.w1.id, catalog.w2.id
    create_stock_in(db_session, stock_in_payload(p2, w2, 3, "GRN-BASE"))
    mv = create_stock_in(db_session, stock_in_payload(p1, w1, 5, "GRN-MOVE"))

    operations = [
        lambda s: update_stock_in(s, mv.id, stock_in_payload(p1, w2, 5, "GRN-MOVE")),
        lambda s: update_stock_in(s, mv.id, stock_in_payload(p2, w1, 5, "GRN-MOVE")),
        lambda s: delete_stock_in(s, mv.id),
    ]
    # ordre de démarrage différent à chaque tour
    order = operations[round_no % 3:] + operations[: round_no % 3]

    results, errors = _race(3, lambda i, s: order[i](s))

    assert len(results) + len(errors) == 3
    assert all(isinstance(e, NotFoundError) for e in errors), errors
    _assert_ledger_consistent(catalog, quantity_of, journal_balance)
    assert quantity_of(p2, w2) == 3

    remaining = [m for m in list_stock_in(db_session) if m.id == mv.id]
    total_moving = sum(quantity_of(*pair) or 0 for pair in _all_pairs(catalog)) - 3
    assert total_moving == (5 if remaining else 0)
