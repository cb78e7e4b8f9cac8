# backend/app/services/transactions.py
import math
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Optional

from backend.app.errors import NotFoundError, ValidationError
from backend.app.logging_config import get_logger
from backend.app.models.transaction_model import (
    DESCRIPTION_MAX_LENGTH,
    Category,
    Kind,
    Transaction,
    category_belongs_to,
    utcnow,
)
from backend.app.store import LedgerStore, TransactionFilters
from backend.app.window import parse_bound

logger = get_logger(__name__)

CENT = Decimal("0.01")
# ten integer digits, stored as cents
MAX_AMOUNT = Decimal("1e10")
UPDATABLE_FIELDS = ("kind", "amount", "category", "description", "date")


@dataclass
class Page:
    items: list
    total_pages: int
    current_page: int
    total: int


def coerce_kind(value: Any) -> Kind:
    if value is None or value == "":
        raise ValidationError("Transaction type is required", field="kind")
    try:
        return Kind(value)
    except ValueError:
        raise ValidationError(f"'{value}' is not a valid transaction type", field="kind")


def coerce_category(value: Any) -> Category:
    if value is None or value == "":
        raise ValidationError("Category is required", field="category")
    try:
        return Category(value)
    except ValueError:
        raise ValidationError(f"'{value}' is not a valid category", field="category")


def coerce_amount(value: Any) -> Decimal:
    if value is None or value == "" or isinstance(value, bool):
        raise ValidationError("Amount is required", field="amount")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"'{value}' is not a valid amount", field="amount")
    if not amount.is_finite():
        raise ValidationError(f"'{value}' is not a valid amount", field="amount")
    if amount < 0:
        raise ValidationError("Amount must be positive", field="amount")
    if amount >= MAX_AMOUNT:
        raise ValidationError("Amount is too large", field="amount")
    if amount != amount.quantize(CENT):
        raise ValidationError("Amount cannot have more than two decimal places", field="amount")
    return amount.quantize(CENT)


def coerce_description(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    if len(text) > DESCRIPTION_MAX_LENGTH:
        raise ValidationError(
            f"Description cannot exceed {DESCRIPTION_MAX_LENGTH} characters", field="description"
        )
    return text or None


def coerce_date(value: Any) -> datetime:
    parsed = parse_bound(value, "date")
    if parsed is None:
        raise ValidationError("Date is required", field="date")
    return parsed


def ensure_category_matches(category: Category, kind: Kind):
    if not category_belongs_to(category, kind):
        raise ValidationError(
            f"'{category.value}' is not a valid {kind.value} category", field="category"
        )


class TransactionService:
    """
    Create, update, delete and list the transactions of one owner at a time.
    """

    def __init__(self, store: LedgerStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    def build(
        self,
        owner_id: int,
        kind: Any,
        amount: Any,
        category: Any,
        description: Any = None,
        date: Any = None,
    ) -> Transaction:
        """Validate the fields and return an unsaved Transaction."""
        kind = coerce_kind(kind)
        amount = coerce_amount(amount)
        category = coerce_category(category)
        ensure_category_matches(category, kind)
        description = coerce_description(description)

        now = self.clock()
        return Transaction(
            owner_id=owner_id,
            kind=kind,
            amount=amount,
            category=category,
            description=description,
            date=now if date is None else coerce_date(date),
            created_at=now,
        )

    def create(self, owner_id: int, kind, amount, category, description=None, date=None) -> Transaction:
        transaction = self.store.insert(
            self.build(owner_id, kind, amount, category, description=description, date=date)
        )
        logger.info(
            "Transaction created",
            transaction_id=transaction.id,
            owner_id=owner_id,
            kind=transaction.kind.value,
        )
        return transaction

    def get(self, transaction_id: int, owner_id: int) -> Transaction:
        transaction = self.store.get(owner_id, transaction_id)
        if transaction is None:
            raise NotFoundError("Transaction not found")
        return transaction

    def update(self, transaction_id: int, owner_id: int, changes: dict) -> Transaction:
        """
        Apply only the fields present in ``changes``.

        ``description`` set to None or "" clears it; a missing key leaves it alone.
        """
        transaction = self.get(transaction_id, owner_id)
        changes = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS}

        kind = coerce_kind(changes["kind"]) if "kind" in changes else transaction.kind
        category = coerce_category(changes["category"]) if "category" in changes else transaction.category
        amount = coerce_amount(changes["amount"]) if "amount" in changes else transaction.amount
        description = (
            coerce_description(changes["description"]) if "description" in changes else transaction.description
        )
        date = coerce_date(changes["date"]) if "date" in changes else transaction.date
        ensure_category_matches(category, kind)

        # every field is validated before the record is touched
        transaction.kind = kind
        transaction.category = category
        transaction.amount = amount
        transaction.description = description
        transaction.date = date

        transaction = self.store.save(transaction)
        logger.info(
            "Transaction updated",
            transaction_id=transaction_id,
            owner_id=owner_id,
            fields=sorted(changes),
        )
        return transaction

    def delete(self, transaction_id: int, owner_id: int) -> None:
        if not self.store.delete(owner_id, transaction_id):
            raise NotFoundError("Transaction not found")
        logger.info("Transaction deleted", transaction_id=transaction_id, owner_id=owner_id)

    def list_transactions(
        self,
        owner_id: int,
        filters: Optional[TransactionFilters] = None,
        page: int = 1,
        page_size: int = 10,
    ) -> Page:
        if page < 1:
            raise ValidationError("page must be 1 or greater", field="page")
        if page_size < 1:
            raise ValidationError("pageSize must be 1 or greater", field="pageSize")
        filters = filters or TransactionFilters()

        total = self.store.count(owner_id, filters)
        total_pages = math.ceil(total / page_size)
        if page > total_pages:
            items = []
        else:
            items = self.store.find(owner_id, filters, offset=(page - 1) * page_size, limit=page_size)
        return Page(items=items, total_pages=total_pages, current_page=page, total=total)
