from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.app.api.deps import get_current_user, get_db, require_role
from backend.app.db.models.core_types import Role
from backend.app.schemas.movements import DeletedRead, StockTransferRead, StockTransferWrite
from backend.services import ledger

router = APIRouter(prefix="/stock-transfers", dependencies=[Depends(get_current_user)])
admin_only = [Depends(require_role(Role.admin))]


@router.get("", response_model=list[StockTransferRead])
def list_stock_transfers(db: Session = Depends(get_db)):
    return ledger.list_transfers(db)


@router.get("/{transfer_id}", response_model=StockTransferRead)
def get_stock_transfer(transfer_id: str, db: Session = Depends(get_db)):
    return ledger.get_transfer(db, transfer_id)


@router.post("", response_model=StockTransferRead, status_code=201)
def create_stock_transfer(payload: StockTransferWrite, db: Session = Depends(get_db)):
    # enregistrement d'audit : le statut ne déplace aucune quantité
    return ledger.create_transfer(db, payload)


@router.patch("/{transfer_id}", response_model=StockTransferRead, dependencies=admin_only)
def update_stock_transfer(transfer_id: str, payload: StockTransferWrite, db: Session = Depends(get_db)):
    return ledger.update_transfer(db, transfer_id, payload)


@router.delete("/{transfer_id}", response_model=DeletedRead, dependencies=admin_only)
def delete_stock_transfer(transfer_id: str, db: Session = Depends(get_db)):
    return {"id": ledger.delete_transfer(db, transfer_id)}
