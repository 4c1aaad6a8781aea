"""Value types exchanged between the ledger protocol and its stores."""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

IN = "IN"
OUT = "OUT"

COMMITTED = "committed"
FAILED = "failed"
SKIPPED = "skipped"


@dataclass(frozen=True)
class LineRequest:
    """One line of a posting: move ``quantity`` of ``key``."""
    key: Any
    quantity: Any
    unit: Optional[str] = None
    occurred_at: Optional[datetime] = None


@dataclass(frozen=True)
class BalanceSnapshot:
    key: Any
    quantity: Decimal
    version: int
    exists: bool = True


@dataclass(frozen=True)
class Movement:
    """A ledger row about to be appended."""
    key: Any
    delta: Decimal
    movement_type: str
    transaction_id: str
    line_index: int
    unit: Optional[str] = None
    occurred_at: Optional[datetime] = None


@dataclass
class LineOutcome:
    index: int
    key: Any
    quantity: Decimal
    status: str
    balance: Optional[Decimal] = None
    error: Optional[Exception] = None

    def to_dict(self) -> dict:
        data = {
            "line_index": self.index,
            "key": self.key,
            "quantity": float(self.quantity),
            "status": self.status,
        }
        if self.balance is not None:
            data["balance"] = float(self.balance)
        if self.error is not None:
            data["error"] = getattr(self.error, "message", str(self.error))
            data["code"] = getattr(self.error, "code", type(self.error).__name__)
        return data


@dataclass
class PostingResult:
    transaction_id: str
    movement_type: str
    lines: list[LineOutcome] = field(default_factory=list)
    balances: dict = field(default_factory=dict)

    @property
    def committed_lines(self) -> list[LineOutcome]:
        return [line for line in self.lines if line.status == COMMITTED]

    @property
    def failed_lines(self) -> list[LineOutcome]:
        return [line for line in self.lines if line.status == FAILED]

    @property
    def skipped_lines(self) -> list[LineOutcome]:
        return [line for line in self.lines if line.status == SKIPPED]

    @property
    def outcome(self) -> str:
        """``committed``, ``partial`` or ``rejected``."""
        if not self.failed_lines:
            return "committed"
        if self.committed_lines:
            return "partial"
        return "rejected"

    def to_dict(self) -> dict:
        return {
            "transaction_id": self.transaction_id,
            "movement_type": self.movement_type,
            "outcome": self.outcome,
            "committed_lines": [line.to_dict() for line in self.committed_lines],
            "failed_lines": [line.to_dict() for line in self.failed_lines],
            "skipped_lines": [line.to_dict() for line in self.skipped_lines],
            "balances": {str(key): float(value) for key, value in self.balances.items()},
        }


@dataclass(frozen=True)
class ReconcileReport:
    key: Any
    ledger_sum: Decimal
    cached_balance: Decimal
    drift: Decimal
    repaired: bool = False

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "ledger_sum": float(self.ledger_sum),
            "cached_balance": float(self.cached_balance),
            "drift": float(self.drift),
            "repaired": self.repaired,
        }
