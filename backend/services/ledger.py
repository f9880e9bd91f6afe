"""
Ledger service : journaux de mouvements (stock in / stock out / transfer).

Règle métier pour chaque paire (product, warehouse) :

    stock_levels.quantity == SUM(stock_in.quantity) - SUM(stock_out.quantity)

Chaque create / update / delete d'un mouvement in/out modifie le journal ET
stock_levels dans la même ``ledger_transaction`` : tout est commité, ou rien.

Update = reversal de l'ancien effet (ancienne paire) PUIS application du
nouvel effet (nouvelle paire), toujours dans cet ordre.

Les transferts sont des enregistrements d'audit : leur ``status`` ne déplace
aucune quantité.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from backend.app.core.logging import get_logger
from backend.app.db.models.models_v1 import (
    Product,
    StockIn,
    StockOut,
    StockTransfer,
    Warehouse,
)
from backend.services.errors import (
    DuplicateReferenceError,
    NotFoundError,
    ValidationError,
)
from backend.services.inventory import adjust_stock_level, ledger_transaction

logger = get_logger(__name__)

# Nombre de tentatives si le mouvement change de paire pendant qu'on attend les verrous
_MAX_RELOCK = 3


@dataclass(frozen=True)
class MovementKind:
    name: str
    label: str
    model: type
    sign: int  # +1 entrée de stock, -1 sortie
    detail_fields: tuple[str, str]


STOCK_IN = MovementKind("STOCK_IN", "Stock in", StockIn, +1, ("source_type", "source_detail"))
STOCK_OUT = MovementKind("STOCK_OUT", "Stock out", StockOut, -1, ("destination_type", "destination_detail"))


# ---------- Helpers ----------
def _require_positive(quantity: int) -> int:
    if quantity is None or int(quantity) <= 0:
        raise ValidationError("Quantity must be greater than 0", field="quantity")
    return int(quantity)


def _ensure_exists(db: Session, model: type, entity_id: str, label: str) -> None:
    if not db.get(model, entity_id):
        raise NotFoundError(label, entity_id)


def _ensure_unique_reference(
    db: Session,
    model: type,
    kind: str,
    reference_code: str,
    exclude_id: str | None = None,
) -> None:
    stmt = select(model.id).where(model.reference_code == reference_code)
    if exclude_id is not None:
        stmt = stmt.where(model.id != exclude_id)
    if db.execute(stmt.limit(1)).first():
        raise DuplicateReferenceError(kind, reference_code)


def _flush_movement(db: Session, kind: str, reference_code: str) -> None:
    # Deux requêtes concurrentes avec le même code passent toutes deux le
    # SELECT ; la contrainte unique tranche.
    try:
        db.flush()
    except IntegrityError as exc:
        raise DuplicateReferenceError(kind, reference_code) from exc


def _get_movement(db: Session, model: type, movement_id: str, label: str, *, for_update: bool = False):
    stmt = select(model).where(model.id == movement_id)
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    mv = db.execute(stmt).scalar_one_or_none()
    if not mv:
        raise NotFoundError(label, movement_id)
    return mv


def _movement_values(kind: MovementKind, payload: Any) -> dict[str, Any]:
    type_field, detail_field = kind.detail_fields
    return {
        "date": payload.date,
        "product_id": payload.product_id,
        "warehouse_id": payload.warehouse_id,
        "quantity": _require_positive(payload.quantity),
        type_field: getattr(payload, type_field, None),
        detail_field: getattr(payload, detail_field, None) or None,
        "reference_code": payload.reference_code,
        "notes": getattr(payload, "notes", None) or None,
    }


def _log_movement(action: str, mv: Any, **extra: Any) -> None:
    logger.info(
        action.lower().replace("_", " "),
        extra={
            "action": action,
            "status": True,
            "movement_id": mv.id,
            "product_id": mv.product_id,
            "warehouse_id": mv.warehouse_id,
            "quantity": mv.quantity,
            "reference_code": mv.reference_code,
            **extra,
        },
    )


# ---------- Opérations génériques in/out ----------
def _list_movements(db: Session, kind: MovementKind) -> list:
    model = kind.model
    stmt = (
        select(model)
        .options(selectinload(model.product), selectinload(model.warehouse))
        .order_by(model.date.desc())
    )
    return list(db.execute(stmt).scalars().all())


def _create_movement(db: Session, kind: MovementKind, payload: Any):
    values = _movement_values(kind, payload)
    pair = (values["product_id"], values["warehouse_id"])
    action = f"CREATE_{kind.name}"

    with ledger_transaction(db, pair, action=action):
        _ensure_exists(db, Product, values["product_id"], "Product")
        _ensure_exists(db, Warehouse, values["warehouse_id"], "Warehouse")
        _ensure_unique_reference(db, kind.model, kind.label, values["reference_code"])

        mv = kind.model(**values)
        db.add(mv)
        _flush_movement(db, kind.label, values["reference_code"])

        adjust_stock_level(db, mv.product_id, mv.warehouse_id, kind.sign * mv.quantity)

    _log_movement(action, mv)
    return mv


def _update_movement(db: Session, kind: MovementKind, movement_id: str, payload: Any):
    values = _movement_values(kind, payload)
    new_pair = (values["product_id"], values["warehouse_id"])
    action = f"UPDATE_{kind.name}"

    for _ in range(_MAX_RELOCK):
        current = _get_movement(db, kind.model, movement_id, kind.label)
        old_pair = (current.product_id, current.warehouse_id)

        with ledger_transaction(db, old_pair, new_pair, action=action):
            mv = _get_movement(db, kind.model, movement_id, kind.label, for_update=True)
            if (mv.product_id, mv.warehouse_id) != old_pair:
                # déplacé par une autre requête pendant l'attente : on reverrouille
                continue

            _ensure_unique_reference(
                db, kind.model, kind.label, values["reference_code"], exclude_id=movement_id
            )
            _ensure_exists(db, Product, values["product_id"], "Product")
            _ensure_exists(db, Warehouse, values["warehouse_id"], "Warehouse")

            old_quantity = mv.quantity

            # 1) reversal de l'ancien effet  2) application du nouveau
            adjust_stock_level(db, old_pair[0], old_pair[1], -kind.sign * old_quantity)
            adjust_stock_level(db, new_pair[0], new_pair[1], kind.sign * values["quantity"])

            for field, value in values.items():
                setattr(mv, field, value)
            _flush_movement(db, kind.label, values["reference_code"])

        _log_movement(
            action,
            mv,
            old_product_id=old_pair[0],
            old_warehouse_id=old_pair[1],
            old_quantity=old_quantity,
        )
        return mv

    raise TimeoutError(f"{kind.label} {movement_id} kept moving between stock levels")


def _delete_movement(db: Session, kind: MovementKind, movement_id: str) -> str:
    action = f"DELETE_{kind.name}"

    for _ in range(_MAX_RELOCK):
        current = _get_movement(db, kind.model, movement_id, kind.label)
        pair = (current.product_id, current.warehouse_id)

        with ledger_transaction(db, pair, action=action):
            mv = _get_movement(db, kind.model, movement_id, kind.label, for_update=True)
            if (mv.product_id, mv.warehouse_id) != pair:
                continue

            adjust_stock_level(db, mv.product_id, mv.warehouse_id, -kind.sign * mv.quantity)
            db.delete(mv)
            db.flush()

        _log_movement(action, mv)
        return movement_id

    raise TimeoutError(f"{kind.label} {movement_id} kept moving between stock levels")


# ---------- Stock in ----------
def list_stock_in(db: Session) -> list[StockIn]:
    return _list_movements(db, STOCK_IN)


def get_stock_in(db: Session, movement_id: str) -> StockIn:
    return _get_movement(db, StockIn, movement_id, STOCK_IN.label)


def create_stock_in(db: Session, payload: Any) -> StockIn:
    return _create_movement(db, STOCK_IN, payload)


def update_stock_in(db: Session, movement_id: str, payload: Any) -> StockIn:
    return _update_movement(db, STOCK_IN, movement_id, payload)


def delete_stock_in(db: Session, movement_id: str) -> str:
    return _delete_movement(db, STOCK_IN, movement_id)


# ---------- Stock out ----------
def list_stock_out(db: Session) -> list[StockOut]:
    return _list_movements(db, STOCK_OUT)


def get_stock_out(db: Session, movement_id: str) -> StockOut:
    return _get_movement(db, StockOut, movement_id, STOCK_OUT.label)


def create_stock_out(db: Session, payload: Any) -> StockOut:
    return _create_movement(db, STOCK_OUT, payload)


def update_stock_out(db: Session, movement_id: str, payload: Any) -> StockOut:
    return _update_movement(db, STOCK_OUT, movement_id, payload)


def delete_stock_out(db: Session, movement_id: str) -> str:
    return _delete_movement(db, STOCK_OUT, movement_id)


# ---------- Transfers ----------
def _transfer_values(payload: Any) -> dict[str, Any]:
    if payload.from_warehouse_id == payload.to_warehouse_id:
        raise ValidationError(
            "from_warehouse_id and to_warehouse_id must differ", field="to_warehouse_id"
        )
    return {
        "date": payload.date,
        "product_id": payload.product_id,
        "from_warehouse_id": payload.from_warehouse_id,
        "to_warehouse_id": payload.to_warehouse_id,
        "quantity": _require_positive(payload.quantity),
        "reference_code": payload.reference_code,
        "status": payload.status,
    }


def _ensure_transfer_refs(db: Session, values: dict[str, Any]) -> None:
    _ensure_exists(db, Product, values["product_id"], "Product")
    _ensure_exists(db, Warehouse, values["from_warehouse_id"], "Warehouse")
    _ensure_exists(db, Warehouse, values["to_warehouse_id"], "Warehouse")


def list_transfers(db: Session) -> list[StockTransfer]:
    stmt = (
        select(StockTransfer)
        .options(
            selectinload(StockTransfer.product),
            selectinload(StockTransfer.from_warehouse),
            selectinload(StockTransfer.to_warehouse),
        )
        .order_by(StockTransfer.date.desc())
    )
    return list(db.execute(stmt).scalars().all())


def get_transfer(db: Session, transfer_id: str) -> StockTransfer:
    return _get_movement(db, StockTransfer, transfer_id, "Stock transfer")


def create_transfer(db: Session, payload: Any) -> StockTransfer:
    values = _transfer_values(payload)

    # pas de paire touchée : transaction sans verrou de stock
    with ledger_transaction(db, action="CREATE_STOCK_TRANSFER"):
        _ensure_transfer_refs(db, values)
        _ensure_unique_reference(db, StockTransfer, "Stock transfer", values["reference_code"])

        tr = StockTransfer(**values)
        db.add(tr)
        _flush_movement(db, "Stock transfer", values["reference_code"])

    logger.info(
        "stock transfer created",
        extra={"action": "CREATE_STOCK_TRANSFER", "status": True, "movement_id": tr.id},
    )
    return tr


def update_transfer(db: Session, transfer_id: str, payload: Any) -> StockTransfer:
    values = _transfer_values(payload)

    with ledger_transaction(db, action="UPDATE_STOCK_TRANSFER"):
        tr = _get_movement(db, StockTransfer, transfer_id, "Stock transfer", for_update=True)
        _ensure_unique_reference(
            db, StockTransfer, "Stock transfer", values["reference_code"], exclude_id=transfer_id
        )
        _ensure_transfer_refs(db, values)

        for field, value in values.items():
            setattr(tr, field, value)
        _flush_movement(db, "Stock transfer", values["reference_code"])

    logger.info(
        "stock transfer updated",
        extra={
            "action": "UPDATE_STOCK_TRANSFER",
            "status": True,
            "movement_id": tr.id,
            "transfer_status": tr.status,
        },
    )
    return tr


def delete_transfer(db: Session, transfer_id: str) -> str:
    with ledger_transaction(db, action="DELETE_STOCK_TRANSFER"):
        tr = _get_movement(db, StockTransfer, transfer_id, "Stock transfer", for_update=True)
        db.delete(tr)
        db.flush()

    logger.info(
        "stock transfer deleted",
        extra={"action": "DELETE_STOCK_TRANSFER", "status": True, "movement_id": transfer_id},
    )
    return transfer_id
