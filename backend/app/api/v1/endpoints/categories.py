from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.app.api.deps import get_current_user, get_db, require_role
from backend.app.db.models.core_types import Role
from backend.app.schemas.catalog import CategoryRead, CategoryWrite
from backend.app.schemas.movements import DeletedRead
from backend.services import catalog

router = APIRouter(prefix="/categories", dependencies=[Depends(get_current_user)])
admin_only = [Depends(require_role(Role.admin))]


@router.get("", response_model=list[CategoryRead])
def list_categories(db: Session = Depends(get_db)):
    return catalog.list_categories(db)


@router.get("/{category_id}", response_model=CategoryRead)
def get_category(category_id: str, db: Session = Depends(get_db)):
    return catalog.get_category(db, category_id)


@router.post("", response_model=CategoryRead, status_code=201, dependencies=admin_only)
def create_category(payload: CategoryWrite, db: Session = Depends(get_db)):
    return catalog.create_category(db, payload)


@router.patch("/{category_id}", response_model=CategoryRead, dependencies=admin_only)
def update_category(category_id: str, payload: CategoryWrite, db: Session = Depends(get_db)):
    return catalog.update_category(db, category_id, payload)


@router.delete("/{category_id}", response_model=DeletedRead, dependencies=admin_only)
def delete_category(category_id: str, db: Session = Depends(get_db)):
    return {"id": catalog.delete_category(db, category_id)}
