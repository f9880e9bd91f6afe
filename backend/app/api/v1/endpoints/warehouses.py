from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.app.api.deps import get_current_user, get_db, require_role
from backend.app.db.models.core_types import Role
from backend.app.schemas.catalog import WarehouseRead, WarehouseWrite
from backend.app.schemas.movements import DeletedRead
from backend.services import catalog

router = APIRouter(prefix="/warehouses", dependencies=[Depends(get_current_user)])
admin_only = [Depends(require_role(Role.admin))]


@router.get("", response_model=list[WarehouseRead])
def list_warehouses(db: Session = Depends(get_db)):
    return catalog.list_warehouses(db)


@router.get("/{warehouse_id}", response_model=WarehouseRead)
def get_warehouse(warehouse_id: str, db: Session = Depends(get_db)):
    return catalog.get_warehouse(db, warehouse_id)


@router.post("", response_model=WarehouseRead, status_code=201, dependencies=admin_only)
def create_warehouse(payload: WarehouseWrite, db: Session = Depends(get_db)):
    return catalog.create_warehouse(db, payload)


@router.patch("/{warehouse_id}", response_model=WarehouseRead, dependencies=admin_only)
def update_warehouse(warehouse_id: str, payload: WarehouseWrite, db: Session = Depends(get_db)):
    return catalog.update_warehouse(db, warehouse_id, payload)


@router.delete("/{warehouse_id}", response_model=DeletedRead, dependencies=admin_only)
def delete_warehouse(warehouse_id: str, db: Session = Depends(get_db)):
    return {"id": catalog.delete_warehouse(db, warehouse_id)}
