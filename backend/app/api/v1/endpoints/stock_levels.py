from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.app.api.deps import get_current_user, get_db, require_role
from backend.app.db.models.core_types import Role
from backend.app.schemas.stock_level import StockLevelCreate, StockLevelRead, StockLevelUpdate
from backend.services import inventory

router = APIRouter(prefix="/stock-levels", dependencies=[Depends(get_current_user)])
admin_only = [Depends(require_role(Role.admin))]


@router.get("", response_model=list[StockLevelRead])
def list_stock_levels(
    product_id: str | None = None,
    warehouse_id: str | None = None,
    db: Session = Depends(get_db),
):
    """
    Niveaux de stock courants.
    - alimentés par les mouvements stock in / stock out
    - écriture directe réservée aux admins (saisie initiale, corrections)
    """
    return inventory.list_stock_levels(db, product_id=product_id, warehouse_id=warehouse_id)


@router.get("/{product_id}/{warehouse_id}", response_model=StockLevelRead)
def get_stock_level(product_id: str, warehouse_id: str, db: Session = Depends(get_db)):
    return inventory.get_stock_level(db, product_id, warehouse_id)


@router.post("", response_model=StockLevelRead, status_code=201, dependencies=admin_only)
def create_stock_level(payload: StockLevelCreate, db: Session = Depends(get_db)):
    return inventory.create_stock_level(db, payload.product_id, payload.warehouse_id, payload.quantity)


@router.patch("/{product_id}/{warehouse_id}", response_model=StockLevelRead, dependencies=admin_only)
def update_stock_level(
    product_id: str,
    warehouse_id: str,
    payload: StockLevelUpdate,
    db: Session = Depends(get_db),
):
    return inventory.set_stock_level(db, product_id, warehouse_id, payload.quantity)


@router.delete("/{product_id}/{warehouse_id}", dependencies=admin_only)
def delete_stock_level(product_id: str, warehouse_id: str, db: Session = Depends(get_db)):
    inventory.delete_stock_level(db, product_id, warehouse_id)
    return {"product_id": product_id, "warehouse_id": warehouse_id}
