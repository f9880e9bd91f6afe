from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from backend.app.core.config import DB_LOCK_TIMEOUT
from backend.app.core.logging import get_logger
from backend.app.db.models.models_v1 import (
    Product,
    StockIn,
    StockLevel,
    StockOut,
    Warehouse,
)
from backend.services.errors import (
    DuplicatePairError,
    InsufficientStockError,
    LedgerError,
    NotFoundError,
    StillReferencedError,
)

logger = get_logger(__name__)

Pair = tuple[str, str]


# ---------- Verrous par paire (product, warehouse) ----------
# FOR UPDATE verrouille la ligne côté Postgres ; SQLite l'ignore, et une ligne
# qui n'existe pas encore ne se verrouille pas. Le registre en mémoire couvre
# ces deux cas pour les requêtes d'un même process.
_registry_lock = threading.Lock()
_pair_lock_table: dict[Pair, threading.Lock] = {}


def _lock_for(pair: Pair) -> threading.Lock:
    with _registry_lock:
        lk = _pair_lock_table.get(pair)
        if lk is None:
            lk = _pair_lock_table[pair] = threading.Lock()
        return lk


@contextmanager
def pair_locks(*pairs: Pair) -> Iterator[None]:
    """
    Verrouille une ou plusieurs paires pour la durée du bloc.

    Ordre d'acquisition trié : deux opérations qui touchent les mêmes paires
    (update W1 -> W2 et W2 -> W1) ne peuvent pas s'interbloquer.
    """
    keys = sorted({(str(p), str(w)) for p, w in pairs})
    held: list[threading.Lock] = []
    try:
        for key in keys:
            lk = _lock_for(key)
            if not lk.acquire(timeout=DB_LOCK_TIMEOUT):
                raise TimeoutError(f"Timed out waiting for stock level lock {key}")
            held.append(lk)
        yield
    finally:
        for lk in reversed(held):
            lk.release()


@contextmanager
def ledger_transaction(db: Session, *pairs: Pair, action: str) -> Iterator[None]:
    """
    Unité atomique du ledger : verrous de paires + une transaction DB.

    Commit si le bloc se termine, rollback complet sinon ; aucune écriture
    partielle (journal ou stock) n'est jamais visible.
    """
    with pair_locks(*pairs):
        try:
            yield
            db.commit()
        except LedgerError as exc:
            db.rollback()
            logger.warning(
                exc.message,
                extra={"action": action, "status": False, "code": exc.code},
            )
            raise
        except Exception as exc:
            db.rollback()
            # la trace complète est loggée par le handler 500 de l'API
            logger.error(
                "transaction failed",
                extra={"action": action, "status": False, "error_type": type(exc).__name__},
            )
            raise


# ---------- Quantity store ----------
def _select_pair(product_id: str, warehouse_id: str):
    return (
        select(StockLevel)
        .where(StockLevel.product_id == product_id)
        .where(StockLevel.warehouse_id == warehouse_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )


def _locked_stock_level(db: Session, product_id: str, warehouse_id: str) -> StockLevel | None:
    return db.execute(_select_pair(product_id, warehouse_id)).scalar_one_or_none()


def get_stock_level(db: Session, product_id: str, warehouse_id: str, *, for_update: bool = False) -> StockLevel:
    if for_update:
        sl = _locked_stock_level(db, product_id, warehouse_id)
    else:
        sl = db.execute(
            select(StockLevel)
            .where(StockLevel.product_id == product_id)
            .where(StockLevel.warehouse_id == warehouse_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
    if not sl:
        raise NotFoundError("Stock level", (product_id, warehouse_id))
    return sl


def adjust_stock_level(db: Session, product_id: str, warehouse_id: str, delta: int) -> int:
    """
    Applique ``delta`` à la quantité de la paire et retourne la nouvelle valeur.

    - delta < 0 : échoue (InsufficientStockError) si le stock passerait sous 0,
      y compris quand la paire n'a pas encore de ligne.
    - delta >= 0 : ne peut pas échouer sur le stock ; crée la ligne si absente.

    Doit être appelé à l'intérieur de ``ledger_transaction``.
    """
    sl = _locked_stock_level(db, product_id, warehouse_id)

    if not sl:
        if delta < 0:
            raise InsufficientStockError(product_id, warehouse_id, available=0, requested=-delta)
        sl = StockLevel(product_id=product_id, warehouse_id=warehouse_id, quantity=0)
        db.add(sl)
        db.flush()

    new_qty = sl.quantity + delta
    if delta < 0 and new_qty < 0:
        raise InsufficientStockError(product_id, warehouse_id, available=sl.quantity, requested=-delta)

    sl.quantity = new_qty
    db.flush()
    return new_qty


def _ensure_pair_refs(db: Session, product_id: str, warehouse_id: str) -> None:
    if not db.get(Product, product_id):
        raise NotFoundError("Product", product_id)
    if not db.get(Warehouse, warehouse_id):
        raise NotFoundError("Warehouse", warehouse_id)


# ---------- Gestion directe des niveaux de stock ----------
def list_stock_levels(
    db: Session,
    *,
    product_id: str | None = None,
    warehouse_id: str | None = None,
) -> list[StockLevel]:
    stmt = (
        select(StockLevel)
        .options(selectinload(StockLevel.product), selectinload(StockLevel.warehouse))
        .join(Product, Product.id == StockLevel.product_id)
        .join(Warehouse, Warehouse.id == StockLevel.warehouse_id)
        .order_by(Warehouse.name, Product.name)
    )
    if product_id is not None:
        stmt = stmt.where(StockLevel.product_id == product_id)
    if warehouse_id is not None:
        stmt = stmt.where(StockLevel.warehouse_id == warehouse_id)
    return list(db.execute(stmt).scalars().all())


def create_stock_level(db: Session, product_id: str, warehouse_id: str, quantity: int) -> StockLevel:
    with ledger_transaction(db, (product_id, warehouse_id), action="CREATE_STOCK_LEVEL"):
        _ensure_pair_refs(db, product_id, warehouse_id)
        if _locked_stock_level(db, product_id, warehouse_id):
            raise DuplicatePairError(product_id, warehouse_id)

        sl = StockLevel(product_id=product_id, warehouse_id=warehouse_id, quantity=max(0, int(quantity)))
        db.add(sl)
        try:
            db.flush()
        except IntegrityError as exc:
            # un autre process a créé la paire entre le SELECT et l'INSERT
            raise DuplicatePairError(product_id, warehouse_id) from exc

    logger.info(
        "stock level created",
        extra={
            "action": "CREATE_STOCK_LEVEL",
            "status": True,
            "product_id": product_id,
            "warehouse_id": warehouse_id,
            "quantity": sl.quantity,
        },
    )
    return sl


def set_stock_level(db: Session, product_id: str, warehouse_id: str, quantity: int) -> StockLevel:
    """Correction manuelle : écrase la quantité (plancher à 0) sans passer par les journaux."""
    with ledger_transaction(db, (product_id, warehouse_id), action="UPDATE_STOCK_LEVEL"):
        sl = get_stock_level(db, product_id, warehouse_id, for_update=True)
        old_qty = sl.quantity
        sl.quantity = max(0, int(quantity))
        db.flush()

    logger.info(
        "stock level updated",
        extra={
            "action": "UPDATE_STOCK_LEVEL",
            "status": True,
            "product_id": product_id,
            "warehouse_id": warehouse_id,
            "old_quantity": old_qty,
            "quantity": sl.quantity,
        },
    )
    return sl


def _pair_reference(db: Session, product_id: str, warehouse_id: str) -> str | None:
    for model, label in ((StockIn, "stock in"), (StockOut, "stock out")):
        hit = db.execute(
            select(model.id)
            .where(model.product_id == product_id)
            .where(model.warehouse_id == warehouse_id)
            .limit(1)
        ).first()
        if hit:
            return label
    return None


def delete_stock_level(db: Session, product_id: str, warehouse_id: str) -> None:
    with ledger_transaction(db, (product_id, warehouse_id), action="DELETE_STOCK_LEVEL"):
        sl = get_stock_level(db, product_id, warehouse_id, for_update=True)
        referenced_by = _pair_reference(db, product_id, warehouse_id)
        if referenced_by:
            raise StillReferencedError("Stock level", referenced_by)
        db.delete(sl)
        db.flush()

    logger.info(
        "stock level deleted",
        extra={
            "action": "DELETE_STOCK_LEVEL",
            "status": True,
            "product_id": product_id,
            "warehouse_id": warehouse_id,
        },
    )


# ---------- Vues inventaire (lecture seule) ----------
def list_products_in_stock(db: Session) -> list[Product]:
    """Produits ayant au moins une ligne de stock (quantité 0 comprise)."""
    has_stock = select(StockLevel.product_id).where(StockLevel.product_id == Product.id).exists()
    return list(db.execute(select(Product).where(has_stock).order_by(Product.name)).scalars().all())


def list_warehouses_holding(db: Session, product_id: str) -> list[Warehouse]:
    if not db.get(Product, product_id):
        raise NotFoundError("Product", product_id)
    stmt = (
        select(Warehouse)
        .join(StockLevel, StockLevel.warehouse_id == Warehouse.id)
        .where(StockLevel.product_id == product_id)
        .order_by(Warehouse.name)
    )
    return list(db.execute(stmt).scalars().all())


def list_low_stock(db: Session) -> list[StockLevel]:
    """Paires dont la quantité est au niveau ou sous le ``min_stock`` du produit."""
    stmt = (
        select(StockLevel)
        .options(selectinload(StockLevel.product), selectinload(StockLevel.warehouse))
        .join(Product, Product.id == StockLevel.product_id)
        .join(Warehouse, Warehouse.id == StockLevel.warehouse_id)
        .where(StockLevel.quantity <= Product.min_stock)
        .order_by(StockLevel.quantity, Product.name, Warehouse.name)
    )
    return list(db.execute(stmt).scalars().all())
