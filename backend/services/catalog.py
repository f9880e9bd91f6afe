"""
Catalog service : catégories, produits, entrepôts.

Pas de logique de stock ici. Seule règle : une entité référencée (produit
par un mouvement, entrepôt par un niveau de stock, etc.) ne se supprime pas.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from backend.app.core.logging import get_logger
from backend.app.db.models.models_v1 import (
    Category,
    Product,
    StockIn,
    StockLevel,
    StockOut,
    StockTransfer,
    Warehouse,
)
from backend.services.errors import (
    DuplicateNameError,
    NotFoundError,
    StillReferencedError,
)
from backend.services.inventory import ledger_transaction

logger = get_logger(__name__)


def _get_or_404(db: Session, model: type, entity_id: str, label: str):
    obj = db.get(model, entity_id)
    if not obj:
        raise NotFoundError(label, entity_id)
    return obj


def _ensure_unique(db: Session, column, value, label: str, exclude_id: str | None = None) -> None:
    if value is None:
        return
    stmt = select(column.class_.id).where(column == value)
    if exclude_id is not None:
        stmt = stmt.where(column.class_.id != exclude_id)
    if db.execute(stmt.limit(1)).first():
        raise DuplicateNameError(label, value)


def _first_reference(db: Session, checks: list[tuple[Any, str]]) -> str | None:
    for stmt, label in checks:
        if db.execute(stmt.limit(1)).first():
            return label
    return None


# ---------- Categories ----------
def list_categories(db: Session) -> list[Category]:
    return list(db.execute(select(Category).order_by(Category.name)).scalars().all())


def get_category(db: Session, category_id: str) -> Category:
    return _get_or_404(db, Category, category_id, "Category")


def create_category(db: Session, payload: Any) -> Category:
    with ledger_transaction(db, action="CREATE_CATEGORY"):
        _ensure_unique(db, Category.name, payload.name, "Category")
        c = Category(name=payload.name, description=payload.description)
        db.add(c)
        db.flush()

    logger.info("category created", extra={"action": "CREATE_CATEGORY", "status": True, "entity_id": c.id})
    return c


def update_category(db: Session, category_id: str, payload: Any) -> Category:
    with ledger_transaction(db, action="UPDATE_CATEGORY"):
        c = get_category(db, category_id)
        _ensure_unique(db, Category.name, payload.name, "Category", exclude_id=category_id)
        c.name = payload.name
        c.description = payload.description
        db.flush()

    logger.info("category updated", extra={"action": "UPDATE_CATEGORY", "status": True, "entity_id": c.id})
    return c


def delete_category(db: Session, category_id: str) -> str:
    with ledger_transaction(db, action="DELETE_CATEGORY"):
        c = get_category(db, category_id)
        if db.execute(select(Product.id).where(Product.category_id == category_id).limit(1)).first():
            raise StillReferencedError("Category", "products")
        db.delete(c)
        db.flush()

    logger.info("category deleted", extra={"action": "DELETE_CATEGORY", "status": True, "entity_id": category_id})
    return category_id


# ---------- Products ----------
def list_products(db: Session) -> list[Product]:
    return list(db.execute(select(Product).order_by(Product.name)).scalars().all())


def get_product(db: Session, product_id: str) -> Product:
    return _get_or_404(db, Product, product_id, "Product")


def _apply_product(db: Session, p: Product, payload: Any) -> None:
    if not db.get(Category, payload.category_id):
        raise NotFoundError("Category", payload.category_id)
    p.sku = payload.sku or None
    p.name = payload.name
    p.category_id = payload.category_id
    p.unit = payload.unit
    p.description = payload.description
    p.min_stock = payload.min_stock


def create_product(db: Session, payload: Any) -> Product:
    with ledger_transaction(db, action="CREATE_PRODUCT"):
        _ensure_unique(db, Product.sku, payload.sku or None, "Product")
        p = Product()
        _apply_product(db, p, payload)
        db.add(p)
        db.flush()

    logger.info("product created", extra={"action": "CREATE_PRODUCT", "status": True, "entity_id": p.id})
    return p


def update_product(db: Session, product_id: str, payload: Any) -> Product:
    with ledger_transaction(db, action="UPDATE_PRODUCT"):
        p = get_product(db, product_id)
        _ensure_unique(db, Product.sku, payload.sku or None, "Product", exclude_id=product_id)
        _apply_product(db, p, payload)
        db.flush()

    logger.info("product updated", extra={"action": "UPDATE_PRODUCT", "status": True, "entity_id": p.id})
    return p


def delete_product(db: Session, product_id: str) -> str:
    with ledger_transaction(db, action="DELETE_PRODUCT"):
        p = get_product(db, product_id)
        referenced_by = _first_reference(
            db,
            [
                (select(StockLevel.product_id).where(StockLevel.product_id == product_id), "stock levels"),
                (select(StockIn.id).where(StockIn.product_id == product_id), "stock in"),
                (select(StockOut.id).where(StockOut.product_id == product_id), "stock out"),
                (select(StockTransfer.id).where(StockTransfer.product_id == product_id), "stock transfers"),
            ],
        )
        if referenced_by:
            raise StillReferencedError("Product", referenced_by)
        db.delete(p)
        db.flush()

    logger.info("product deleted", extra={"action": "DELETE_PRODUCT", "status": True, "entity_id": product_id})
    return product_id


# ---------- Warehouses ----------
def list_warehouses(db: Session) -> list[Warehouse]:
    return list(db.execute(select(Warehouse).order_by(Warehouse.name)).scalars().all())


def get_warehouse(db: Session, warehouse_id: str) -> Warehouse:
    return _get_or_404(db, Warehouse, warehouse_id, "Warehouse")


def create_warehouse(db: Session, payload: Any) -> Warehouse:
    with ledger_transaction(db, action="CREATE_WAREHOUSE"):
        _ensure_unique(db, Warehouse.name, payload.name, "Warehouse")
        w = Warehouse(name=payload.name, location=payload.location)
        db.add(w)
        db.flush()

    logger.info("warehouse created", extra={"action": "CREATE_WAREHOUSE", "status": True, "entity_id": w.id})
    return w


def update_warehouse(db: Session, warehouse_id: str, payload: Any) -> Warehouse:
    with ledger_transaction(db, action="UPDATE_WAREHOUSE"):
        w = get_warehouse(db, warehouse_id)
        _ensure_unique(db, Warehouse.name, payload.name, "Warehouse", exclude_id=warehouse_id)
        w.name = payload.name
        w.location = payload.location
        db.flush()

    logger.info("warehouse updated", extra={"action": "UPDATE_WAREHOUSE", "status": True, "entity_id": w.id})
    return w


def delete_warehouse(db: Session, warehouse_id: str) -> str:
    with ledger_transaction(db, action="DELETE_WAREHOUSE"):
        w = get_warehouse(db, warehouse_id)
        referenced_by = _first_reference(
            db,
            [
                (select(StockLevel.warehouse_id).where(StockLevel.warehouse_id == warehouse_id), "stock levels"),
                (select(StockIn.id).where(StockIn.warehouse_id == warehouse_id), "stock in"),
                (select(StockOut.id).where(StockOut.warehouse_id == warehouse_id), "stock out"),
                (
                    select(StockTransfer.id).where(
                        or_(
                            StockTransfer.from_warehouse_id == warehouse_id,
                            StockTransfer.to_warehouse_id == warehouse_id,
                        )
                    ),
                    "stock transfers",
                ),
            ],
        )
        if referenced_by:
            raise StillReferencedError("Warehouse", referenced_by)
        db.delete(w)
        db.flush()

    logger.info("warehouse deleted", extra={"action": "DELETE_WAREHOUSE", "status": True, "entity_id": warehouse_id})
    return warehouse_id
