"""Error taxonomy of the balance ledger."""
from decimal import Decimal
from typing import Any, Optional


class LedgerError(Exception):
    """Base class for every ledger failure."""

    code = "ledger_error"
    status_code = 500
    retryable = False

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        # PostingResult of the posting that raised, when there is one
        self.result = None
        super().__init__(self.message)


class LedgerValidationError(LedgerError):
    """The transaction was rejected before anything was written."""

    code = "invalid_transaction"
    status_code = 422


class InvalidQuantity(LedgerValidationError):
    code = "invalid_quantity"

    def __init__(self, value: Any, line_index: Optional[int] = None,
                 reason: str = "must be a finite number greater than zero"):
        super().__init__(
            message=f"Quantity {reason}, got '{value}'",
            details={"value": str(value), "line_index": line_index}
        )


class UnknownEntityError(LedgerValidationError):
    code = "unknown_entity"
    entity = "entity"

    def __init__(self, key: Any):
        self.key = key
        super().__init__(
            message=f"{self.entity.capitalize()} '{key}' does not exist",
            details={"entity": self.entity, "key": str(key)}
        )


class UnknownProduct(UnknownEntityError):
    code = "unknown_product"
    entity = "product"


class UnknownCell(UnknownEntityError):
    code = "unknown_cell"
    entity = "cell"


class InsufficientStock(LedgerError):
    code = "insufficient_stock"
    status_code = 409

    def __init__(self, key: Any, available: Decimal, requested: Decimal):
        self.key = key
        self.available = available
        self.requested = requested
        super().__init__(
            message=f"Insufficient balance for '{key}'. Available: {available}, requested: {requested}",
            details={"key": str(key), "available": float(available), "requested": float(requested)}
        )


class ConcurrentModification(LedgerError):
    """The balance changed between read and conditional write."""

    code = "concurrent_modification"
    status_code = 409
    retryable = True

    def __init__(self, key: Any, expected_version: int):
        self.key = key
        self.expected_version = expected_version
        super().__init__(
            message=f"Balance of '{key}' was modified concurrently (expected version {expected_version})",
            details={"key": str(key), "expected_version": expected_version}
        )


class PersistenceFailure(LedgerError):
    """The store failed or timed out while reading or writing."""

    code = "persistence_failure"
    status_code = 503

    def __init__(self, message: str, retryable: bool = True, details: Optional[dict] = None):
        super().__init__(message=message, details=details)
        self.retryable = retryable


class DuplicateTransaction(LedgerError):
    code = "duplicate_transaction"
    status_code = 409

    def __init__(self, transaction_id: str, line_index: Optional[int] = None):
        self.transaction_id = transaction_id
        self.line_index = line_index
        if line_index is None:
            message = f"Transaction '{transaction_id}' was already posted"
        else:
            message = f"Line {line_index} of transaction '{transaction_id}' was already posted"
        super().__init__(
            message=message,
            details={"transaction_id": transaction_id, "line_index": line_index}
        )


class PartialFailure(LedgerError):
    """Some lines of a posting committed and some failed."""

    code = "partial_failure"
    status_code = 207

    def __init__(self, result):
        super().__init__(
            message=(
                f"Transaction '{result.transaction_id}' partially applied: "
                f"{len(result.committed_lines)} committed, {len(result.failed_lines)} failed"
            ),
            details={"transaction_id": result.transaction_id}
        )
        self.result = result
