# backend/app/models/transaction_model.py
import enum
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import BigInteger, Column, DateTime, Enum, ForeignKey, Index, Integer, String
from sqlalchemy.types import TypeDecorator

from backend.app.db import Base


class Kind(str, enum.Enum):
    INCOME = "income"
    EXPENSE = "expense"


class Category(str, enum.Enum):
    # income
    SALARY = "salary"
    FREELANCE = "freelance"
    INVESTMENTS = "investments"
    BUSINESS = "business"
    OTHER_INCOME = "other-income"
    # expense
    FOOD = "food"
    TRANSPORT = "transport"
    UTILITIES = "utilities"
    ENTERTAINMENT = "entertainment"
    SHOPPING = "shopping"
    HEALTHCARE = "healthcare"
    EDUCATION = "education"
    RENT = "rent"
    INSURANCE = "insurance"
    OTHER_EXPENSE = "other-expense"


INCOME_CATEGORIES = (
    Category.SALARY,
    Category.FREELANCE,
    Category.INVESTMENTS,
    Category.BUSINESS,
    Category.OTHER_INCOME,
)

EXPENSE_CATEGORIES = (
    Category.FOOD,
    Category.TRANSPORT,
    Category.UTILITIES,
    Category.ENTERTAINMENT,
    Category.SHOPPING,
    Category.HEALTHCARE,
    Category.EDUCATION,
    Category.RENT,
    Category.INSURANCE,
    Category.OTHER_EXPENSE,
)

CATEGORIES_BY_KIND = {
    Kind.INCOME: INCOME_CATEGORIES,
    Kind.EXPENSE: EXPENSE_CATEGORIES,
}

DESCRIPTION_MAX_LENGTH = 200


def categories_for(kind: Kind) -> tuple:
    return CATEGORIES_BY_KIND[Kind(kind)]


def category_belongs_to(category: Category, kind: Kind) -> bool:
    return Category(category) in categories_for(kind)


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every datetime column is stored in."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Money(TypeDecorator):
    """
    Two-decimal amounts stored as integer cents.

    SUM over the column stays an integer on every backend (SQLite included),
    so totals come back exact and are turned back into Decimal here.
    """
    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return int((Decimal(str(value)) * 100).to_integral_value())

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(int(value)).scaleb(-2)


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    kind = Column(
        Enum(Kind, name="transaction_kind", native_enum=False, values_callable=_enum_values),
        nullable=False,
    )
    amount = Column(Money, nullable=False)
    category = Column(
        Enum(Category, name="transaction_category", native_enum=False, values_callable=_enum_values),
        nullable=False,
    )
    description = Column(String(DESCRIPTION_MAX_LENGTH), nullable=True)
    date = Column(DateTime, nullable=False, default=utcnow)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_transactions_owner_date", "owner_id", "date"),
        Index("ix_transactions_owner_kind", "owner_id", "kind"),
        Index("ix_transactions_owner_category", "owner_id", "category"),
    )

    def __repr__(self):
        return f"<Transaction id={self.id} owner={self.owner_id} {self.kind.value} {self.category.value} {self.amount}>"
