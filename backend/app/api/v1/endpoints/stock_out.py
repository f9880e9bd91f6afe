from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.app.api.deps import get_current_user, get_db, require_role
from backend.app.db.models.core_types import Role
from backend.app.schemas.movements import DeletedRead, StockOutRead, StockOutWrite
from backend.services import ledger

router = APIRouter(prefix="/stock-out", dependencies=[Depends(get_current_user)])
admin_only = [Depends(require_role(Role.admin))]


@router.get("", response_model=list[StockOutRead])
def list_stock_out(db: Session = Depends(get_db)):
    return ledger.list_stock_out(db)


@router.get("/{movement_id}", response_model=StockOutRead)
def get_stock_out(movement_id: str, db: Session = Depends(get_db)):
    return ledger.get_stock_out(db, movement_id)


@router.post("", response_model=StockOutRead, status_code=201)
def create_stock_out(payload: StockOutWrite, db: Session = Depends(get_db)):
    return ledger.create_stock_out(db, payload)


@router.patch("/{movement_id}", response_model=StockOutRead, dependencies=admin_only)
def update_stock_out(movement_id: str, payload: StockOutWrite, db: Session = Depends(get_db)):
    return ledger.update_stock_out(db, movement_id, payload)


@router.delete("/{movement_id}", response_model=DeletedRead, dependencies=admin_only)
def delete_stock_out(movement_id: str, db: Session = Depends(get_db)):
    return {"id": ledger.delete_stock_out(db, movement_id)}
