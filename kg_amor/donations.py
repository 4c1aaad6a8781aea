"""Cell donations: the kg a cell has delivered, kept as a ledger in historico_kg."""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from .config import settings
from .ledger import BalanceLedger, LineRequest, PostingResult, ReconcileReport, UnknownCell
from .ledger.sql import LedgerBinding, SqlLedgerStore
from .models import Cell, HistoricoEntry

CELL_BINDING = LedgerBinding(
    name="cells",
    entity=Cell,
    entity_active="is_active",
    balance=Cell,
    balance_key="id",
    balance_quantity="quantity_kg",
    balance_version="kg_version",
    balance_updated_at="kg_updated_at",
    movement=HistoricoEntry,
    movement_key="cell_id",
    movement_delta="quantity",
    movement_occurred_at="delivered_at",
    lazy_balance=False,
    unknown_error=UnknownCell,
)


def cell_ledger(db: Session) -> BalanceLedger:
    return BalanceLedger(
        SqlLedgerStore(db, CELL_BINDING),
        max_retries=settings.ledger_max_retries,
        backoff_seconds=settings.ledger_retry_backoff_ms / 1000,
        name="cells",
    )


def record_delivery(db: Session, cell_id: int, quantity: Decimal, transaction_id: str,
                    delivered_at: Optional[datetime] = None) -> PostingResult:
    line = LineRequest(key=cell_id, quantity=quantity, unit="kg", occurred_at=delivered_at)
    return cell_ledger(db).post_inbound(transaction_id, [line])


def record_correction(db: Session, cell_id: int, quantity: Decimal, transaction_id: str) -> PostingResult:
    """Take kg back out of a cell's total (wrongly registered delivery)."""
    line = LineRequest(key=cell_id, quantity=quantity, unit="kg")
    return cell_ledger(db).post_outbound(transaction_id, [line])


def reconcile_cell(db: Session, cell_id: int, repair: bool = False) -> ReconcileReport:
    return cell_ledger(db).reconcile(cell_id, repair=repair)


def reconcile_cells(db: Session, repair: bool = False) -> list[ReconcileReport]:
    return cell_ledger(db).reconcile_all(repair=repair)
