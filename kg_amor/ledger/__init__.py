"""Generic balance + append-only ledger engine."""
from .errors import (
    ConcurrentModification,
    DuplicateTransaction,
    InsufficientStock,
    InvalidQuantity,
    LedgerError,
    LedgerValidationError,
    PartialFailure,
    PersistenceFailure,
    UnknownCell,
    UnknownEntityError,
    UnknownProduct,
)
from .protocol import BalanceLedger, to_quantity
from .stores import InMemoryLedgerStore, LedgerStore
from .types import IN, OUT, BalanceSnapshot, LineRequest, PostingResult, ReconcileReport

__all__ = [
    "BalanceLedger", "to_quantity",
    "LedgerStore", "InMemoryLedgerStore",
    "IN", "OUT", "BalanceSnapshot", "LineRequest", "PostingResult", "ReconcileReport",
    "LedgerError", "LedgerValidationError", "InvalidQuantity", "UnknownEntityError",
    "UnknownProduct", "UnknownCell", "InsufficientStock", "ConcurrentModification",
    "PersistenceFailure", "DuplicateTransaction", "PartialFailure",
]
