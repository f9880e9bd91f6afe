from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.app.api.deps import get_current_user, get_db, require_role
from backend.app.db.models.core_types import Role
from backend.app.schemas.catalog import ProductRead, ProductWrite
from backend.app.schemas.movements import DeletedRead
from backend.services import catalog

router = APIRouter(prefix="/products", dependencies=[Depends(get_current_user)])
admin_only = [Depends(require_role(Role.admin))]


@router.get("", response_model=list[ProductRead])
def list_products(db: Session = Depends(get_db)):
    return catalog.list_products(db)


@router.get("/{product_id}", response_model=ProductRead)
def get_product(product_id: str, db: Session = Depends(get_db)):
    return catalog.get_product(db, product_id)


@router.post("", response_model=ProductRead, status_code=201, dependencies=admin_only)
def create_product(payload: ProductWrite, db: Session = Depends(get_db)):
    return catalog.create_product(db, payload)


@router.patch("/{product_id}", response_model=ProductRead, dependencies=admin_only)
def update_product(product_id: str, payload: ProductWrite, db: Session = Depends(get_db)):
    return catalog.update_product(db, product_id, payload)


@router.delete("/{product_id}", response_model=DeletedRead, dependencies=admin_only)
def delete_product(product_id: str, db: Session = Depends(get_db)):
    return {"id": catalog.delete_product(db, product_id)}
