from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.app.api.deps import get_current_user, get_db
from backend.app.schemas.inventory import LowStockRead, ProductInStockRead, WarehouseInStockRead
from backend.services import inventory

router = APIRouter(prefix="/inventories", dependencies=[Depends(get_current_user)])


@router.get("/products", response_model=list[ProductInStockRead])
def list_products_in_stock(db: Session = Depends(get_db)):
    return inventory.list_products_in_stock(db)


@router.get("/warehouses/{product_id}", response_model=list[WarehouseInStockRead])
def list_warehouses_holding(product_id: str, db: Session = Depends(get_db)):
    return inventory.list_warehouses_holding(db, product_id)


@router.get("/low-stock", response_model=list[LowStockRead])
def list_low_stock(db: Session = Depends(get_db)):
    """Alertes de stock : quantité <= min_stock du produit (stock vide compris)."""
    return inventory.list_low_stock(db)
