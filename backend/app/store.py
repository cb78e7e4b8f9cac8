# backend/app/store.py
"""
Ledger store: every read and write of transaction rows goes through here,
always filtered by owner. SQLAlchemy failures surface as StoreError.
"""
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterable, Optional

from sqlalchemy import extract, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.app.errors import StoreError
from backend.app.logging_config import get_logger
from backend.app.models.transaction_model import Category, Kind, Transaction
from backend.app.window import DateWindow

logger = get_logger(__name__)


@dataclass(frozen=True)
class TransactionFilters:
    kind: Optional[Kind] = None
    category: Optional[Category] = None
    window: DateWindow = field(default_factory=DateWindow)


class LedgerStore:
    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _guard(self, action: str, write: bool = False):
        try:
            yield
        except SQLAlchemyError as e:
            if write:
                self.db.rollback()
            logger.error(f"Ledger store failed to {action}", action=action, error=str(e), exc_info=True)
            raise StoreError(f"Could not {action}") from e

    def _owned(self, owner_id: int, *entities):
        query = self.db.query(*entities) if entities else self.db.query(Transaction)
        return query.filter(Transaction.owner_id == owner_id)

    def _filtered(self, owner_id: int, filters: TransactionFilters, *entities):
        query = self._owned(owner_id, *entities)
        if filters.kind is not None:
            query = query.filter(Transaction.kind == filters.kind)
        if filters.category is not None:
            query = query.filter(Transaction.category == filters.category)
        for clause in filters.window.conditions(Transaction.date):
            query = query.filter(clause)
        return query

    # ---- single records ----

    def insert(self, transaction: Transaction) -> Transaction:
        with self._guard("insert transaction", write=True):
            self.db.add(transaction)
            self.db.commit()
            self.db.refresh(transaction)
        return transaction

    def insert_many(self, transactions: Iterable[Transaction]) -> int:
        rows = list(transactions)
        with self._guard("insert transactions", write=True):
            self.db.add_all(rows)
            self.db.commit()
        return len(rows)

    def get(self, owner_id: int, transaction_id: int) -> Optional[Transaction]:
        with self._guard("load transaction"):
            return self._owned(owner_id).filter(Transaction.id == transaction_id).first()

    def save(self, transaction: Transaction) -> Transaction:
        with self._guard("update transaction", write=True):
            self.db.add(transaction)
            self.db.commit()
            self.db.refresh(transaction)
        return transaction

    def delete(self, owner_id: int, transaction_id: int) -> int:
        """Delete the owner's transaction; returns the number of rows removed (0 or 1)."""
        with self._guard("delete transaction", write=True):
            deleted = (
                self._owned(owner_id)
                .filter(Transaction.id == transaction_id)
                .delete()
            )
            self.db.commit()
        return deleted

    # ---- listing ----

    def find(self, owner_id: int, filters: TransactionFilters, offset: int, limit: int) -> list[Transaction]:
        with self._guard("list transactions"):
            return (
                self._filtered(owner_id, filters)
                .order_by(Transaction.date.desc(), Transaction.id.asc())
                .offset(offset)
                .limit(limit)
                .all()
            )

    def count(self, owner_id: int, filters: TransactionFilters) -> int:
        with self._guard("count transactions"):
            return self._filtered(owner_id, filters).count()

    # ---- aggregates ----

    def totals_by_kind(self, owner_id: int, window: DateWindow) -> list[tuple]:
        """Rows of (kind, total, count)."""
        with self._guard("aggregate by kind"):
            return (
                self._filtered(
                    owner_id,
                    TransactionFilters(window=window),
                    Transaction.kind,
                    func.sum(Transaction.amount),
                    func.count(Transaction.id),
                )
                .group_by(Transaction.kind)
                .all()
            )

    def totals_by_category(self, owner_id: int, window: DateWindow, kind: Kind) -> list[tuple]:
        """Rows of (category, total), largest total first."""
        total = func.sum(Transaction.amount).label("total")
        with self._guard("aggregate by category"):
            return (
                self._filtered(
                    owner_id,
                    TransactionFilters(kind=kind, window=window),
                    Transaction.category,
                    total,
                )
                .group_by(Transaction.category)
                .order_by(total.desc(), Transaction.category.asc())
                .all()
            )

    def totals_by_month(self, owner_id: int, window: DateWindow) -> list[tuple]:
        """Rows of (year, month, kind, total) in chronological order."""
        year = extract("year", Transaction.date).label("year")
        month = extract("month", Transaction.date).label("month")
        with self._guard("aggregate by month"):
            return (
                self._filtered(
                    owner_id,
                    TransactionFilters(window=window),
                    year,
                    month,
                    Transaction.kind,
                    func.sum(Transaction.amount).label("total"),
                )
                .group_by(year, month, Transaction.kind)
                .order_by(year, month)
                .all()
            )
