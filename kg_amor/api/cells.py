"""
Cell (célula) endpoints.

A cell's ``quantity_kg`` is the cached balance of its delivery history
and only changes through deliveries and corrections.
"""
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..db import get_db
from ..donations import reconcile_cell, reconcile_cells, record_correction, record_delivery
from ..error_handlers import ResourceNotFoundError
from ..ledger import to_quantity
from ..logging_config import get_logger
from ..models import Cell, HistoricoEntry, Network
from ..schemas import (
    CellCreate,
    CellResponse,
    CellUpdate,
    DeliveryCreate,
    HistoricoResponse,
    ReconcileResponse,
    ReconcileSweepResponse,
)
from .stock import sweep_response

logger = get_logger("api.cells")

router = APIRouter(tags=["Cells"])


def _to_response(cell: Cell) -> CellResponse:
    return CellResponse(
        id=cell.id,
        name=cell.name,
        leader=cell.leader,
        supervisors=cell.supervisors,
        phone=cell.phone,
        address=cell.address,
        network_id=cell.network_id,
        network=cell.network.color if cell.network else None,
        quantity_kg=float(cell.quantity_kg or 0),
        is_active=cell.is_active,
        kg_updated_at=cell.kg_updated_at,
    )


def _get_cell(db: Session, cell_id: int) -> Cell:
    cell = db.get(Cell, cell_id)
    if cell is None:
        raise ResourceNotFoundError("Cell", cell_id)
    return cell


def _require_network(db: Session, network_id: int) -> Network:
    network = db.get(Network, network_id)
    if network is None or not network.is_active:
        raise ResourceNotFoundError("Network", network_id)
    return network


@router.get("/cells", response_model=List[CellResponse])
def list_cells(
    network_id: Optional[int] = None,
    include_inactive: bool = False,
    db: Session = Depends(get_db)
):
    query = db.query(Cell)
    if not include_inactive:
        query = query.filter(Cell.is_active.is_(True))
    if network_id is not None:
        query = query.filter(Cell.network_id == network_id)
    return [_to_response(c) for c in query.order_by(Cell.name).all()]


@router.post("/cells", response_model=CellResponse, status_code=status.HTTP_201_CREATED)
def create_cell(payload: CellCreate, db: Session = Depends(get_db)):
    """
    Create a cell.

    - **initial_kg**: optional opening weight, recorded as the first delivery
    """
    _require_network(db, payload.network_id)
    initial_kg = to_quantity(payload.initial_kg) if payload.initial_kg else None

    cell = Cell(**payload.model_dump(exclude={"initial_kg"}), quantity_kg=0, kg_version=0)
    db.add(cell)
    db.commit()
    db.refresh(cell)
    logger.info(f"[CELL] created id={cell.id} name={cell.name}")

    if initial_kg is not None:
        record_delivery(db, cell.id, initial_kg, f"cell:{cell.id}:opening")
        db.refresh(cell)
    return _to_response(cell)


@router.post("/cells/reconcile", response_model=ReconcileSweepResponse)
def reconcile_all_cells(repair: bool = False, db: Session = Depends(get_db)):
    return sweep_response(reconcile_cells(db, repair=repair))


@router.get("/cells/{cell_id}", response_model=CellResponse)
def get_cell(cell_id: int, db: Session = Depends(get_db)):
    return _to_response(_get_cell(db, cell_id))


@router.put("/cells/{cell_id}", response_model=CellResponse)
def update_cell(cell_id: int, payload: CellUpdate, db: Session = Depends(get_db)):
    cell = _get_cell(db, cell_id)
    changes = payload.model_dump(exclude_unset=True)
    if "network_id" in changes:
        _require_network(db, changes["network_id"])
    for field, value in changes.items():
        if isinstance(value, str):
            value = value.strip()
        setattr(cell, field, value)
    db.commit()
    db.refresh(cell)
    return _to_response(cell)


@router.delete("/cells/{cell_id}")
def deactivate_cell(cell_id: int, db: Session = Depends(get_db)):
    """Soft delete; history and kg are kept."""
    cell = _get_cell(db, cell_id)
    cell.is_active = False
    db.commit()
    logger.info(f"[CELL] deactivated id={cell_id}")
    return {"id": cell_id, "is_active": False}


@router.get("/cells/{cell_id}/deliveries", response_model=List[HistoricoResponse])
def list_deliveries(
    cell_id: int,
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db)
):
    _get_cell(db, cell_id)
    return (
        db.query(HistoricoEntry)
        .filter(HistoricoEntry.cell_id == cell_id)
        .order_by(HistoricoEntry.delivered_at.desc(), HistoricoEntry.id.desc())
        .limit(limit)
        .all()
    )


def _transaction_id(kind: str, cell_id: int, reference: Optional[str]) -> str:
    return f"{kind}:{cell_id}:{reference or uuid.uuid4().hex}"


@router.post("/cells/{cell_id}/deliveries", status_code=status.HTTP_201_CREATED)
def create_delivery(cell_id: int, payload: DeliveryCreate, db: Session = Depends(get_db)):
    """
    Record kg delivered by a cell.

    - **reference**: optional client id; re-sending the same one is rejected as a duplicate
    """
    _get_cell(db, cell_id)
    result = record_delivery(
        db, cell_id, payload.quantity,
        _transaction_id("delivery", cell_id, payload.reference),
        delivered_at=payload.delivered_at,
    )
    return result.to_dict()


@router.post("/cells/{cell_id}/corrections", status_code=status.HTTP_201_CREATED)
def create_correction(cell_id: int, payload: DeliveryCreate, db: Session = Depends(get_db)):
    """Remove wrongly recorded kg from a cell; the total never goes below zero."""
    _get_cell(db, cell_id)
    result = record_correction(
        db, cell_id, payload.quantity, _transaction_id("correction", cell_id, payload.reference)
    )
    return result.to_dict()


@router.get("/cells/{cell_id}/reconcile", response_model=ReconcileResponse)
def check_cell(cell_id: int, db: Session = Depends(get_db)):
    _get_cell(db, cell_id)
    return reconcile_cell(db, cell_id).to_dict()


@router.post("/cells/{cell_id}/reconcile", response_model=ReconcileResponse)
def repair_cell(cell_id: int, repair: bool = True, db: Session = Depends(get_db)):
    _get_cell(db, cell_id)
    return reconcile_cell(db, cell_id, repair=repair).to_dict()
