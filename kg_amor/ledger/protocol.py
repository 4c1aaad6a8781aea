"""
Balance ledger protocol.

A posting moves quantities of one or more keys (products, cells). Every
line appends an immutable ledger row and then updates the cached balance
of its key under optimistic concurrency. Lines commit independently, so
a posting can be applied partially; that case is reported through
``PartialFailure`` and a later re-post of the same transaction id only
applies the lines that are still missing.
"""
import time
from collections import defaultdict
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Optional

from ..logging_config import get_logger
from .errors import (
    ConcurrentModification,
    DuplicateTransaction,
    InsufficientStock,
    InvalidQuantity,
    LedgerError,
    LedgerValidationError,
    PartialFailure,
)
from .stores import LedgerStore
from .types import (
    COMMITTED, FAILED, IN, OUT, SKIPPED,
    BalanceSnapshot, LineOutcome, LineRequest, Movement, PostingResult, ReconcileReport,
)

logger = get_logger("ledger")

# scale of every stored quantity column
QUANTITY_PLACES = 3
_QUANTUM = Decimal(1).scaleb(-QUANTITY_PLACES)


def to_quantity(value: Any, line_index: Optional[int] = None) -> Decimal:
    """
    Coerce ``value`` to a positive finite Decimal or raise InvalidQuantity.

    Values with more than ``QUANTITY_PLACES`` significant decimal places are
    rejected, never rounded.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidQuantity(value, line_index)
    try:
        quantity = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidQuantity(value, line_index)
    if not quantity.is_finite() or quantity <= 0:
        raise InvalidQuantity(value, line_index)
    try:
        exact = quantity == quantity.quantize(_QUANTUM)
    except InvalidOperation:
        exact = False
    if not exact:
        raise InvalidQuantity(value, line_index, reason=f"allows at most {QUANTITY_PLACES} decimal places")
    return quantity


def _line_request(line: Any, index: int) -> LineRequest:
    """Accept a LineRequest, a ``(key, quantity[, unit])`` tuple or a mapping."""
    if isinstance(line, LineRequest):
        return line
    if isinstance(line, Mapping):
        key = next((line[name] for name in ("key", "product_id", "productId", "cell_id", "cellId")
                    if name in line), None)
        if key is None or "quantity" not in line:
            raise LedgerValidationError(
                "Line must name a key and a quantity",
                details={"line_index": index, "fields": [str(name) for name in line]},
            )
        return LineRequest(key=key, quantity=line["quantity"], unit=line.get("unit"),
                           occurred_at=line.get("occurred_at"))
    if isinstance(line, (tuple, list)) and len(line) in (2, 3):
        return LineRequest(*line)
    raise LedgerValidationError(
        "Line must be a LineRequest, a (key, quantity[, unit]) pair or a mapping",
        details={"line_index": index, "type": type(line).__name__},
    )


class BalanceLedger:
    """Posts movements against a ``LedgerStore`` and reconciles its balances."""

    def __init__(self, store: LedgerStore, max_retries: int = 3, backoff_seconds: float = 0.02,
                 name: str = "ledger"):
        self.store = store
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self.name = name

    # ------------------------------------------------------------------
    # Posting
    # ------------------------------------------------------------------
    def post_inbound(self, transaction_id: str, lines: Iterable) -> PostingResult:
        return self._post(transaction_id, lines, IN)

    def post_outbound(self, transaction_id: str, lines: Iterable) -> PostingResult:
        return self._post(transaction_id, lines, OUT)

    def check(self, transaction_id: str, lines: Iterable, movement_type: str) -> list[int]:
        """
        Run every validation of a posting without writing anything.

        Returns the indexes of the lines that a posting would still apply.
        """
        requests = self._normalize(transaction_id, lines)
        pending = self._pending(transaction_id, requests)
        self._validate(pending, movement_type)
        return [index for index, _ in pending]

    def _post(self, transaction_id, lines, movement_type) -> PostingResult:
        requests = self._normalize(transaction_id, lines)
        pending = self._pending(transaction_id, requests)
        self._validate(pending, movement_type)

        result = PostingResult(transaction_id=transaction_id, movement_type=movement_type)
        pending_indexes = {index for index, _ in pending}
        for index, request in enumerate(requests):
            if index not in pending_indexes:
                result.lines.append(LineOutcome(index, request.key, request.quantity, SKIPPED))

        for index, request in pending:
            try:
                snapshot = self._commit_with_retry(transaction_id, index, request, movement_type)
            except LedgerError as exc:
                logger.error(
                    f"[{self.name}] {movement_type} {transaction_id}#{index} failed: {exc.message}"
                )
                result.lines.append(LineOutcome(index, request.key, request.quantity, FAILED, error=exc))
            else:
                logger.info(
                    f"[{self.name}] {movement_type} {transaction_id}#{index} key={request.key} "
                    f"qty={request.quantity} balance={snapshot.quantity}"
                )
                result.lines.append(
                    LineOutcome(index, request.key, request.quantity, COMMITTED, balance=snapshot.quantity)
                )

        result.lines.sort(key=lambda line: line.index)
        for key in dict.fromkeys(request.key for request in requests):
            try:
                result.balances[key] = self.store.read_balance(key).quantity
            except LedgerError as exc:
                logger.error(f"[{self.name}] could not read balance of key={key}: {exc.message}")

        if result.failed_lines:
            if result.committed_lines:
                raise PartialFailure(result)
            error = result.failed_lines[0].error
            error.result = result
            raise error
        return result

    def _normalize(self, transaction_id, lines) -> list[LineRequest]:
        if not transaction_id or not str(transaction_id).strip():
            raise LedgerValidationError("Transaction id is required")
        requests = []
        for index, line in enumerate(lines):
            line = _line_request(line, index)
            requests.append(LineRequest(
                key=line.key,
                quantity=to_quantity(line.quantity, index),
                unit=line.unit,
                occurred_at=line.occurred_at,
            ))
        if not requests:
            raise LedgerValidationError(
                "Transaction has no lines", details={"transaction_id": transaction_id}
            )
        return requests

    def _pending(self, transaction_id, requests) -> list[tuple[int, LineRequest]]:
        applied = self.store.applied_lines(transaction_id)
        pending = [(index, r) for index, r in enumerate(requests) if index not in applied]
        if not pending:
            raise DuplicateTransaction(transaction_id)
        if applied:
            logger.info(
                f"[{self.name}] {transaction_id}: {len(applied)} line(s) already applied, "
                f"{len(pending)} pending"
            )
        return pending

    def _validate(self, pending, movement_type) -> None:
        for key in dict.fromkeys(request.key for _, request in pending):
            if not self.store.exists(key):
                raise self.store.unknown_error(key)

        if movement_type == OUT:
            requested = defaultdict(Decimal)
            for _, request in pending:
                requested[request.key] += request.quantity
            for key, quantity in requested.items():
                available = self.store.read_balance(key).quantity
                if quantity > available:
                    raise InsufficientStock(key, available, quantity)

    def _commit_with_retry(self, transaction_id, index, request, movement_type) -> BalanceSnapshot:
        delta = request.quantity if movement_type == IN else -request.quantity
        attempt = 0
        while True:
            snapshot = self.store.read_balance(request.key)
            new_quantity = snapshot.quantity + delta
            if new_quantity < 0:
                raise InsufficientStock(request.key, snapshot.quantity, request.quantity)
            movement = Movement(
                key=request.key,
                delta=delta,
                movement_type=movement_type,
                transaction_id=transaction_id,
                line_index=index,
                unit=request.unit,
                occurred_at=request.occurred_at,
            )
            try:
                return self.store.commit_line(movement, snapshot, new_quantity)
            except ConcurrentModification:
                if attempt >= self.max_retries:
                    raise
                delay = self.backoff_seconds * (2 ** attempt)
                attempt += 1
                logger.warning(
                    f"[{self.name}] {transaction_id}#{index} version conflict on key={request.key}, "
                    f"retry {attempt}/{self.max_retries} in {delay * 1000:.0f}ms"
                )
                time.sleep(delay)

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------
    def reconcile(self, key: Any, repair: bool = False) -> ReconcileReport:
        """Compare the cached balance of ``key`` with its ledger sum."""
        ledger_sum = self.store.ledger_sum(key)
        cached = self.store.read_balance(key).quantity
        drift = cached - ledger_sum
        repaired = False
        if drift != 0:
            logger.warning(
                f"[{self.name}] drift on key={key}: cached={cached} ledger={ledger_sum} drift={drift}"
            )
            if repair:
                self.store.overwrite_balance(key, ledger_sum)
                repaired = True
                logger.info(f"[{self.name}] key={key} balance repaired to {ledger_sum}")
        return ReconcileReport(key, ledger_sum, cached, drift, repaired)

    def reconcile_all(self, repair: bool = False) -> list[ReconcileReport]:
        return [self.reconcile(key, repair=repair) for key in self.store.keys()]
