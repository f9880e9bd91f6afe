from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.app.api.deps import get_current_user, get_db, require_role
from backend.app.db.models.core_types import Role
from backend.app.schemas.movements import DeletedRead, StockInRead, StockInWrite
from backend.services import ledger

router = APIRouter(prefix="/stock-in", dependencies=[Depends(get_current_user)])
admin_only = [Depends(require_role(Role.admin))]


@router.get("", response_model=list[StockInRead])
def list_stock_in(db: Session = Depends(get_db)):
    return ledger.list_stock_in(db)


@router.get("/{movement_id}", response_model=StockInRead)
def get_stock_in(movement_id: str, db: Session = Depends(get_db)):
    return ledger.get_stock_in(db, movement_id)


@router.post("", response_model=StockInRead, status_code=201)
def create_stock_in(payload: StockInWrite, db: Session = Depends(get_db)):
    return ledger.create_stock_in(db, payload)


@router.patch("/{movement_id}", response_model=StockInRead, dependencies=admin_only)
def update_stock_in(movement_id: str, payload: StockInWrite, db: Session = Depends(get_db)):
    return ledger.update_stock_in(db, movement_id, payload)


@router.delete("/{movement_id}", response_model=DeletedRead, dependencies=admin_only)
def delete_stock_in(movement_id: str, db: Session = Depends(get_db)):
    return {"id": ledger.delete_stock_in(db, movement_id)}
