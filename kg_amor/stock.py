"""Product stock: receipts add to a balance, withdrawals take from it."""
from typing import Iterable

from sqlalchemy.orm import Session

from .config import settings
from .ledger import BalanceLedger, PostingResult, ReconcileReport, UnknownProduct
from .ledger.sql import LedgerBinding, SqlLedgerStore
from .models import Product, StockBalance, StockMovement

STOCK_BINDING = LedgerBinding(
    name="stock",
    entity=Product,
    balance=StockBalance,
    balance_key="product_id",
    balance_quantity="quantity_on_hand",
    balance_version="version",
    balance_updated_at="last_updated_at",
    movement=StockMovement,
    movement_key="product_id",
    movement_delta="quantity_delta",
    movement_unit="unit",
    unknown_error=UnknownProduct,
)


def receipt_transaction_id(reference: str) -> str:
    return f"receipt:{reference}"


def withdrawal_transaction_id(reference: str) -> str:
    return f"withdrawal:{reference}"


def stock_ledger(db: Session) -> BalanceLedger:
    return BalanceLedger(
        SqlLedgerStore(db, STOCK_BINDING),
        max_retries=settings.ledger_max_retries,
        backoff_seconds=settings.ledger_retry_backoff_ms / 1000,
        name="stock",
    )


def post_receipt(db: Session, transaction_id: str, lines: Iterable) -> PostingResult:
    """Add every line's quantity to its product balance."""
    return stock_ledger(db).post_inbound(transaction_id, lines)


def post_withdrawal(db: Session, transaction_id: str, lines: Iterable) -> PostingResult:
    """Remove every line's quantity from its product balance; never goes below zero."""
    return stock_ledger(db).post_outbound(transaction_id, lines)


def reconcile(db: Session, product_id: int, repair: bool = False) -> ReconcileReport:
    return stock_ledger(db).reconcile(product_id, repair=repair)


def reconcile_all(db: Session, repair: bool = False) -> list[ReconcileReport]:
    return stock_ledger(db).reconcile_all(repair=repair)
