import os
import tempfile
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

# Base SQLite fichier (partagée entre threads) sauf si TEST_DATABASE_URL est fourni.
# Doit être posé AVANT tout import de backend.* (l'engine est créé à l'import).
_DB_DIR = tempfile.mkdtemp(prefix="stock-ledger-tests-")
os.environ["DATABASE_URL"] = os.getenv(
    "TEST_DATABASE_URL", f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
)

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from backend.app.db.base import Base  # noqa: E402
from backend.app.db.models.core_types import Role  # noqa: E402
from backend.app.db.models.models_v1 import Category, Product, StockLevel, Warehouse  # noqa: E402
from backend.app.db.session import SessionLocal, engine  # noqa: E402
from backend.app.schemas.movements import StockInWrite, StockOutWrite, StockTransferWrite  # noqa: E402
from backend.services.auth import create_user, sign_in  # noqa: E402


@pytest.fixture(autouse=True)
def _schema():
    """
    Schéma recréé à chaque test.

    Pas de transaction englobante ici : le ledger commit lui-même et les
    tests de concurrence ouvrent une session par thread, il faut donc que
    les écritures soient réellement visibles.
    """
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session() -> Session:
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def catalog(db_session):
    """Une catégorie, deux produits, deux entrepôts."""
    cat = Category(name="Beverages")
    db_session.add(cat)
    db_session.flush()

    p1 = Product(name="Mineral water 1L", unit="bottle", category_id=cat.id, min_stock=10)
    p2 = Product(name="Orange juice 1L", unit="bottle", category_id=cat.id, min_stock=5)
    w1 = Warehouse(name="North", location="Jakarta")
    w2 = Warehouse(name="South", location="Surabaya")
    db_session.add_all([p1, p2, w1, w2])
    db_session.commit()

    return SimpleNamespace(category=cat, p1=p1, p2=p2, w1=w1, w2=w2)


@pytest.fixture
def quantity_of():
    """Lit la quantité committée depuis une session neuve (None si pas de ligne)."""

    def _read(product_id, warehouse_id):
        with SessionLocal() as s:
            sl = s.get(StockLevel, (product_id, warehouse_id))
            return None if sl is None else sl.quantity

    return _read


NOW = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def stock_in_payload():
    def _make(product_id, warehouse_id, quantity, reference_code, **extra):
        return StockInWrite(
            date=extra.pop("date", NOW),
            product_id=product_id,
            warehouse_id=warehouse_id,
            quantity=quantity,
            reference_code=reference_code,
            **extra,
        )

    return _make


@pytest.fixture
def stock_out_payload():
    def _make(product_id, warehouse_id, quantity, reference_code, **extra):
        return StockOutWrite(
            date=extra.pop("date", NOW),
            product_id=product_id,
            warehouse_id=warehouse_id,
            quantity=quantity,
            reference_code=reference_code,
            **extra,
        )

    return _make


@pytest.fixture
def transfer_payload():
    def _make(product_id, from_id, to_id, quantity, reference_code, **extra):
        return StockTransferWrite(
            date=extra.pop("date", NOW),
            product_id=product_id,
            from_warehouse_id=from_id,
            to_warehouse_id=to_id,
            quantity=quantity,
            reference_code=reference_code,
            **extra,
        )

    return _make


# ---------- API ----------
@pytest.fixture
def client():
    from backend.app.main import app

    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_headers(db_session):
    create_user(db_session, "admin", "admin-pass", role=Role.admin)
    session = sign_in(db_session, "admin", "admin-pass")
    return {"Authorization": f"Bearer {session.token}"}


@pytest.fixture
def guest_headers(db_session):
    create_user(db_session, "guest", "guest-pass", role=Role.guest)
    session = sign_in(db_session, "guest", "guest-pass")
    return {"Authorization": f"Bearer {session.token}"}


@pytest.fixture
def journal_balance():
    """SUM(stock_in) - SUM(stock_out) pour une paire, lu depuis les journaux."""
    from sqlalchemy import func, select

    from backend.app.db.models.models_v1 import StockIn, StockOut

    def _balance(product_id, warehouse_id):
        with SessionLocal() as s:
            total = 0
            for model, sign in ((StockIn, 1), (StockOut, -1)):
                qty = s.execute(
                    select(func.coalesce(func.sum(model.quantity), 0))
                    .where(model.product_id == product_id)
                    .where(model.warehouse_id == warehouse_id)
                ).scalar_one()
                total += sign * int(qty)
            return total

    return _balance
