"""
SQLAlchemy implementation of ``LedgerStore``.

A ``LedgerBinding`` names the tables and columns that play the roles of
entity, cached balance and ledger, so the same store serves product
stock (``stock`` / ``stock_movements``) and cell donations
(``cells.quantity_kg`` / ``historico_kg``).
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..logging_config import get_logger
from .errors import (
    ConcurrentModification,
    DuplicateTransaction,
    LedgerError,
    PersistenceFailure,
    UnknownEntityError,
)
from .stores import LedgerStore
from .types import BalanceSnapshot, Movement

logger = get_logger("ledger.sql")


@dataclass(frozen=True)
class LedgerBinding:
    name: str
    entity: type
    balance: type
    balance_key: str
    balance_quantity: str
    balance_version: str
    movement: type
    movement_key: str
    movement_delta: str
    balance_updated_at: Optional[str] = None
    movement_unit: Optional[str] = None
    movement_occurred_at: Optional[str] = None
    entity_active: Optional[str] = None
    # balance rows are created on first movement rather than with the entity
    lazy_balance: bool = True
    unknown_error: type = UnknownEntityError


def _as_decimal(value) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class SqlLedgerStore(LedgerStore):
    """Ledger store over an injected SQLAlchemy session. Commits once per line."""

    def __init__(self, session: Session, binding: LedgerBinding):
        self.session = session
        self.binding = binding
        self.unknown_error = binding.unknown_error

    def _col(self, model, name):
        return getattr(model, name)

    def _run(self, operation: str, fn):
        try:
            return fn()
        except LedgerError:
            self.session.rollback()
            raise
        except OperationalError as exc:
            self.session.rollback()
            logger.error(f"[{self.binding.name}] {operation} failed: {exc}")
            raise PersistenceFailure(
                f"Store unavailable during {operation}",
                retryable=True,
                details={"operation": operation, "error": str(exc.orig)}
            ) from exc
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.error(f"[{self.binding.name}] {operation} failed: {exc}")
            raise PersistenceFailure(
                f"Store error during {operation}",
                retryable=False,
                details={"operation": operation, "error": str(exc)}
            ) from exc

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def exists(self, key):
        b = self.binding
        stmt = select(b.entity.id).where(b.entity.id == key)
        if b.entity_active:
            stmt = stmt.where(self._col(b.entity, b.entity_active).is_(True))
        return self._run("exists", lambda: self.session.execute(stmt).first() is not None)

    def read_balance(self, key):
        b = self.binding
        stmt = select(
            self._col(b.balance, b.balance_quantity),
            self._col(b.balance, b.balance_version),
        ).where(self._col(b.balance, b.balance_key) == key)
        row = self._run("read_balance", lambda: self.session.execute(stmt).first())
        if row is None:
            return BalanceSnapshot(key, Decimal("0"), 0, exists=False)
        return BalanceSnapshot(key, _as_decimal(row[0]), row[1] or 0)

    def applied_lines(self, transaction_id):
        m = self.binding.movement
        stmt = select(m.line_index).where(m.source_transaction_id == transaction_id)
        return self._run("applied_lines", lambda: set(self.session.execute(stmt).scalars()))

    def ledger_sum(self, key):
        b = self.binding
        stmt = select(func.sum(self._col(b.movement, b.movement_delta))).where(
            self._col(b.movement, b.movement_key) == key
        )
        return _as_decimal(self._run("ledger_sum", lambda: self.session.execute(stmt).scalar()))

    def keys(self):
        b = self.binding
        balance_keys = select(self._col(b.balance, b.balance_key))
        movement_keys = select(self._col(b.movement, b.movement_key)).distinct()

        def load():
            found = set(self.session.execute(balance_keys).scalars())
            found.update(self.session.execute(movement_keys).scalars())
            return sorted(found)

        return self._run("keys", load)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def commit_line(self, movement, expected, new_quantity):
        now = datetime.utcnow()

        def write():
            self._append(movement, now)
            version = self._write_balance(movement.key, expected, new_quantity, now)
            self.session.commit()
            return BalanceSnapshot(movement.key, new_quantity, version)

        return self._run("commit_line", write)

    def _append(self, movement: Movement, now: datetime) -> None:
        b = self.binding
        values = {
            b.movement_key: movement.key,
            b.movement_delta: movement.delta,
            "movement_type": movement.movement_type,
            "source_transaction_id": movement.transaction_id,
            "line_index": movement.line_index,
            "created_at": now,
        }
        if b.movement_unit:
            values[b.movement_unit] = movement.unit
        if b.movement_occurred_at:
            values[b.movement_occurred_at] = movement.occurred_at or now
        self.session.add(b.movement(**values))
        try:
            self.session.flush()
        except IntegrityError as exc:
            raise DuplicateTransaction(movement.transaction_id, movement.line_index) from exc

    def _write_balance(self, key: Any, expected: BalanceSnapshot, new_quantity: Decimal,
                       now: datetime) -> int:
        b = self.binding
        if not expected.exists:
            if not b.lazy_balance:
                raise b.unknown_error(key)
            values = {b.balance_key: key, b.balance_quantity: new_quantity, b.balance_version: 1}
            if b.balance_updated_at:
                values[b.balance_updated_at] = now
            self.session.add(b.balance(**values))
            try:
                self.session.flush()
            except IntegrityError as exc:
                # another writer created the row first
                raise ConcurrentModification(key, expected.version) from exc
            return 1

        version_col = self._col(b.balance, b.balance_version)
        values = {b.balance_quantity: new_quantity, b.balance_version: version_col + 1}
        if b.balance_updated_at:
            values[b.balance_updated_at] = now
        stmt = (
            update(b.balance)
            .where(self._col(b.balance, b.balance_key) == key, version_col == expected.version)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if self.session.execute(stmt).rowcount != 1:
            raise ConcurrentModification(key, expected.version)
        return expected.version + 1

    def overwrite_balance(self, key, quantity):
        b = self.binding
        now = datetime.utcnow()

        def write():
            current = self.read_balance(key)
            if not current.exists:
                return self._created(key, quantity, now)
            version_col = self._col(b.balance, b.balance_version)
            values = {b.balance_quantity: quantity, b.balance_version: version_col + 1}
            if b.balance_updated_at:
                values[b.balance_updated_at] = now
            self.session.execute(
                update(b.balance)
                .where(self._col(b.balance, b.balance_key) == key)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            self.session.commit()
            return BalanceSnapshot(key, quantity, current.version + 1)

        return self._run("overwrite_balance", write)

    def _created(self, key, quantity, now) -> BalanceSnapshot:
        b = self.binding
        if not b.lazy_balance:
            raise b.unknown_error(key)
        values = {b.balance_key: key, b.balance_quantity: quantity, b.balance_version: 1}
        if b.balance_updated_at:
            values[b.balance_updated_at] = now
        self.session.add(b.balance(**values))
        self.session.commit()
        return BalanceSnapshot(key, quantity, 1)
