"""
Store interface used by the balance ledger, plus a thread-safe
in-memory implementation.
"""
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Iterable

from .errors import (
    ConcurrentModification,
    DuplicateTransaction,
    PersistenceFailure,
    UnknownEntityError,
)
from .types import BalanceSnapshot, Movement


class LedgerStore(ABC):
    """
    Persistence seam of a balance + ledger pair.

    ``commit_line`` must append the movement and write the balance as one
    atomic unit, the movement first. The balance write is conditioned on
    ``expected.version``.
    """

    unknown_error = UnknownEntityError

    @abstractmethod
    def exists(self, key: Any) -> bool:
        ...

    @abstractmethod
    def read_balance(self, key: Any) -> BalanceSnapshot:
        ...

    @abstractmethod
    def applied_lines(self, transaction_id: str) -> set[int]:
        ...

    @abstractmethod
    def commit_line(self, movement: Movement, expected: BalanceSnapshot,
                    new_quantity: Decimal) -> BalanceSnapshot:
        ...

    @abstractmethod
    def ledger_sum(self, key: Any) -> Decimal:
        ...

    @abstractmethod
    def keys(self) -> list:
        ...

    @abstractmethod
    def overwrite_balance(self, key: Any, quantity: Decimal) -> BalanceSnapshot:
        ...


class InMemoryLedgerStore(LedgerStore):
    """Dictionary backed store, used by unit tests and scripts."""

    def __init__(self, keys: Iterable[Any] = (), unknown_error=UnknownEntityError,
                 lock_timeout: float = 5.0):
        self.unknown_error = unknown_error
        self.lock_timeout = lock_timeout
        self._lock = threading.Lock()
        self._entities = set(keys)
        self._balances: dict[Any, tuple[Decimal, int]] = {}
        self.movements: list[Movement] = []

    @contextmanager
    def _locked(self):
        if not self._lock.acquire(timeout=self.lock_timeout):
            raise PersistenceFailure(f"Timed out after {self.lock_timeout}s waiting for the store")
        try:
            yield
        finally:
            self._lock.release()

    def add_entity(self, key: Any) -> None:
        with self._locked():
            self._entities.add(key)

    def exists(self, key):
        with self._locked():
            return key in self._entities

    def read_balance(self, key):
        with self._locked():
            if key not in self._balances:
                return BalanceSnapshot(key, Decimal("0"), 0, exists=False)
            quantity, version = self._balances[key]
            return BalanceSnapshot(key, quantity, version)

    def applied_lines(self, transaction_id):
        with self._locked():
            return {m.line_index for m in self.movements if m.transaction_id == transaction_id}

    def commit_line(self, movement, expected, new_quantity):
        with self._locked():
            if any(m.transaction_id == movement.transaction_id and m.line_index == movement.line_index
                   for m in self.movements):
                raise DuplicateTransaction(movement.transaction_id, movement.line_index)
            current = self._balances.get(movement.key)
            if expected.exists:
                if current is None or current[1] != expected.version:
                    raise ConcurrentModification(movement.key, expected.version)
            elif current is not None:
                raise ConcurrentModification(movement.key, expected.version)
            version = expected.version + 1
            self.movements.append(movement)
            self._balances[movement.key] = (new_quantity, version)
            return BalanceSnapshot(movement.key, new_quantity, version)

    def ledger_sum(self, key):
        with self._locked():
            return sum((m.delta for m in self.movements if m.key == key), Decimal("0"))

    def keys(self):
        with self._locked():
            found = set(self._balances) | {m.key for m in self.movements}
        return sorted(found, key=str)

    def overwrite_balance(self, key, quantity):
        with self._locked():
            version = self._balances.get(key, (Decimal("0"), 0))[1] + 1
            self._balances[key] = (quantity, version)
            return BalanceSnapshot(key, quantity, version)

    def set_balance(self, key: Any, quantity: Decimal) -> None:
        """Seed a balance without a ledger row (used to simulate drift)."""
        self.overwrite_balance(key, Decimal(str(quantity)))
