"""
Stock balance, movement and reconciliation endpoints.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..db import get_db
from ..error_handlers import ResourceNotFoundError
from ..ledger import ReconcileReport
from ..models import Category, Product, StockBalance, StockMovement
from ..schemas import (
    ReconcileResponse,
    ReconcileSweepResponse,
    StockBalanceResponse,
    StockMovementResponse,
)
from ..stock import reconcile, reconcile_all

router = APIRouter(tags=["Stock"])


def sweep_response(reports: List[ReconcileReport]) -> ReconcileSweepResponse:
    drifted = [r for r in reports if r.drift != 0]
    return ReconcileSweepResponse(
        checked=len(reports),
        drifted=len(drifted),
        repaired=sum(1 for r in reports if r.repaired),
        reports=[ReconcileResponse(**r.to_dict()) for r in drifted],
    )


@router.get("/stock", response_model=List[StockBalanceResponse])
def list_stock(only_available: bool = False, db: Session = Depends(get_db)):
    """Current balance of every product that has received stock."""
    query = (
        db.query(StockBalance, Product, Category.name)
        .join(Product, StockBalance.product_id == Product.id)
        .outerjoin(Category, Product.category_id == Category.id)
    )
    if only_available:
        query = query.filter(StockBalance.quantity_on_hand > 0)
    return [
        StockBalanceResponse(
            product_id=product.id,
            product_name=product.name,
            unit=product.unit,
            category=category,
            quantity_on_hand=float(balance.quantity_on_hand),
            version=balance.version,
            last_updated_at=balance.last_updated_at,
        )
        for balance, product, category in query.order_by(Product.name).all()
    ]


@router.get("/stock/movements", response_model=List[StockMovementResponse])
def list_movements(
    product_id: Optional[int] = None,
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db)
):
    query = db.query(StockMovement)
    if product_id is not None:
        query = query.filter(StockMovement.product_id == product_id)
    return query.order_by(StockMovement.id.desc()).limit(limit).all()


@router.post("/stock/reconcile", response_model=ReconcileSweepResponse)
def reconcile_stock(repair: bool = False, db: Session = Depends(get_db)):
    """Compare every cached balance with its ledger; ``repair`` rewrites drifted balances."""
    return sweep_response(reconcile_all(db, repair=repair))


@router.get("/stock/{product_id}/reconcile", response_model=ReconcileResponse)
def check_product(product_id: int, db: Session = Depends(get_db)):
    if db.get(Product, product_id) is None:
        raise ResourceNotFoundError("Product", product_id)
    return reconcile(db, product_id).to_dict()


@router.post("/stock/{product_id}/reconcile", response_model=ReconcileResponse)
def repair_product(product_id: int, repair: bool = True, db: Session = Depends(get_db)):
    if db.get(Product, product_id) is None:
        raise ResourceNotFoundError("Product", product_id)
    return reconcile(db, product_id, repair=repair).to_dict()
